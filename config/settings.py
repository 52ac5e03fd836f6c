import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "off", "no"}


@dataclass(frozen=True)
class Settings:
    SECRET_KEY: str
    DOCUMENT_STORE_PROVIDER: str
    DATABASE_URL: str | None
    AWS_ACCESS_KEY_ID: str | None
    AWS_SECRET_ACCESS_KEY: str | None
    AWS_REGION: str
    DYNAMODB_TABLE_NAME: str
    DYNAMODB_ENDPOINT: str | None
    SKILL_CATALOG_PATH: str | None
    EXERCISE_PASS_SCORE: int
    REVIEW_SCORE_THRESHOLD: int
    SKILL_STALE_DAYS: int
    RECENT_ITEMS_LIMIT: int
    DEMO_ACCOUNT_EMAIL: str
    DEMO_DATA_ENABLED: bool
    MIN_PASSWORD_LENGTH: int


def get_settings() -> Settings:
    return Settings(
        SECRET_KEY=os.getenv("SECRET_KEY", "dev-insecure-key"),
        DOCUMENT_STORE_PROVIDER=os.getenv("DOCUMENT_STORE_PROVIDER", "memory").strip().lower(),
        DATABASE_URL=os.getenv("DATABASE_URL"),
        AWS_ACCESS_KEY_ID=os.getenv("AWS_ACCESS_KEY_ID"),
        AWS_SECRET_ACCESS_KEY=os.getenv("AWS_SECRET_ACCESS_KEY"),
        AWS_REGION=os.getenv("AWS_REGION", "eu-central-1"),
        DYNAMODB_TABLE_NAME=os.getenv("DYNAMODB_TABLE_NAME", "course-documents"),
        DYNAMODB_ENDPOINT=os.getenv("DYNAMODB_ENDPOINT"),
        SKILL_CATALOG_PATH=os.getenv("SKILL_CATALOG_PATH"),
        EXERCISE_PASS_SCORE=int(os.getenv("EXERCISE_PASS_SCORE", "80")),
        REVIEW_SCORE_THRESHOLD=int(os.getenv("REVIEW_SCORE_THRESHOLD", "70")),
        SKILL_STALE_DAYS=int(os.getenv("SKILL_STALE_DAYS", "7")),
        RECENT_ITEMS_LIMIT=int(os.getenv("RECENT_ITEMS_LIMIT", "5")),
        DEMO_ACCOUNT_EMAIL=os.getenv("DEMO_ACCOUNT_EMAIL", "demo@example.com"),
        DEMO_DATA_ENABLED=_env_bool("DEMO_DATA_ENABLED", True),
        MIN_PASSWORD_LENGTH=int(os.getenv("MIN_PASSWORD_LENGTH", "6")),
    )
