import datetime
from collections.abc import Iterator

import pytest

from course import create_app
from course.catalog import default_catalog
from course.services import DictionaryManager, ExerciseResultTracker, ProgressTracker, SkillMatrixEngine
from course.store import InMemoryDocumentStore


class FrozenClock:
    """Store clock that only moves when a test says so."""

    def __init__(self, start: datetime.datetime) -> None:
        self.current = start

    def __call__(self) -> datetime.datetime:
        return self.current

    def advance(self, **delta) -> datetime.datetime:
        self.current += datetime.timedelta(**delta)
        return self.current


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.timezone.utc))


@pytest.fixture()
def store(clock) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(clock=clock)


@pytest.fixture()
def user_id() -> str:
    return "user-1"


@pytest.fixture()
def skills(store) -> SkillMatrixEngine:
    return SkillMatrixEngine(store, default_catalog())


@pytest.fixture()
def progress(store) -> ProgressTracker:
    return ProgressTracker(store)


@pytest.fixture()
def exercises(store) -> ExerciseResultTracker:
    return ExerciseResultTracker(store)


@pytest.fixture()
def dictionary(store) -> DictionaryManager:
    return DictionaryManager(store)


@pytest.fixture()
def app(monkeypatch: pytest.MonkeyPatch, store):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DOCUMENT_STORE_PROVIDER", "memory")
    monkeypatch.setenv("DEMO_ACCOUNT_EMAIL", "demo@example.com")
    monkeypatch.delenv("SKILL_CATALOG_PATH", raising=False)

    application = create_app(store=store)
    application.config.update(TESTING=True)

    yield application


@pytest.fixture()
def client(app) -> Iterator:
    with app.test_client() as client:
        yield client


@pytest.fixture()
def app_context(app):
    with app.app_context():
        yield
