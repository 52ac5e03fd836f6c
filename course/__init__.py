from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask, current_app, jsonify
from flask_login import LoginManager

from config.settings import Settings, get_settings

from .services import CourseServices, SignedIn, build_services
from .services.demo import seed_demo_data
from .store import DocumentStore, create_document_store

logger = logging.getLogger(__name__)

_ENV_LOADED = False


def _ensure_env_loaded() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    base_dir = Path(__file__).resolve().parent.parent
    env_path = base_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
    else:
        load_dotenv(override=True)

    _ENV_LOADED = True


login_manager = LoginManager()
login_manager.session_protection = "basic"


@login_manager.user_loader
def load_user(user_id: str) -> Optional[object]:
    services = get_services()
    return services.auth.provider.get_user(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"success": False, "error": "Authentication required."}), 401


def get_services(app: Optional[Flask] = None) -> CourseServices:
    target = app or current_app
    return target.extensions["course"]


def _install_demo_seeding(services: CourseServices, settings: Settings) -> None:
    demo_email = settings.DEMO_ACCOUNT_EMAIL.strip().lower()

    def _on_auth_change(event) -> None:
        if isinstance(event, SignedIn) and event.user.email.strip().lower() == demo_email:
            seed_demo_data(services, event.user.id)

    services.auth.subscribe(_on_auth_change)


def _register_commands(app: Flask) -> None:
    @app.cli.command("init-skills")
    @click.argument("uid")
    def init_skills_command(uid: str) -> None:
        """Write the zero-state skill matrix for a user."""
        result = get_services(app).skills.initialize(uid)
        if not result.success:
            raise click.ClickException(result.error or "Failed to initialize skills.")
        click.echo(f"Initialized {result.data} skills for {uid}.")

    @app.cli.command("seed-demo")
    @click.argument("uid")
    def seed_demo_command(uid: str) -> None:
        """Populate a user with the demo lesson, exercise, skill and word."""
        results = seed_demo_data(get_services(app), uid)
        failed = [result.error for result in results if not result.success]
        if failed:
            raise click.ClickException("; ".join(str(error) for error in failed))
        click.echo(f"Demo data created for {uid}.")


def create_app(store: Optional[DocumentStore] = None) -> Flask:
    _ensure_env_loaded()
    settings = get_settings()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.SECRET_KEY
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.json.ensure_ascii = False

    document_store = store or create_document_store(settings)
    logger.info("Using %s document store", type(document_store).__name__)
    services = build_services(settings, document_store)
    app.extensions["course"] = services
    app.config["COURSE_SETTINGS"] = settings

    if settings.DEMO_DATA_ENABLED:
        _install_demo_seeding(services, settings)

    login_manager.init_app(app)
    _register_commands(app)

    from .routes import bp as core_bp

    app.register_blueprint(core_bp)

    return app
