from __future__ import annotations

import math
from typing import Any, Optional

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from . import get_services
from .results import Result

bp = Blueprint("core", __name__)


class PayloadError(ValueError):
    """Raised when a request body or query string cannot be parsed."""


@bp.errorhandler(PayloadError)
def handle_payload_error(exc: PayloadError):
    return jsonify({"success": False, "error": str(exc)}), 400


def _respond(result: Result, success_status: int = 200):
    if result.success:
        return jsonify(result.to_dict()), success_status
    return jsonify(result.to_dict()), 404 if result.not_found else 400


def _payload() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PayloadError("Request body must be a JSON object.")
    return data


def _number(value: Any, name: str, *, integer: bool = False) -> Optional[int | float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise PayloadError(f"{name} must be a number.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise PayloadError(f"{name} must be a number.") from None
    if not math.isfinite(number):
        raise PayloadError(f"{name} must be a finite number.")
    if number.is_integer():
        return int(number)
    if integer:
        raise PayloadError(f"{name} must be a whole number.")
    return number


def _required_number(payload: dict[str, Any], name: str, *, integer: bool = False) -> int | float:
    value = _number(payload.get(name), name, integer=integer)
    if value is None:
        raise PayloadError(f"{name} is required.")
    return value


def _text(payload: dict[str, Any], name: str, *, required: bool = True) -> str:
    value = payload.get(name, "")
    if not isinstance(value, str):
        raise PayloadError(f"{name} must be a string.")
    if required and not value.strip():
        raise PayloadError(f"{name} is required.")
    return value


def _uid() -> str:
    return current_user.get_id()


@bp.get("/health")
def health():
    return jsonify({"status": "ok", "service": "course"}), 200


# Auth


@bp.post("/auth/register")
def register():
    payload = _payload()
    result = get_services().auth.register(
        _text(payload, "email"),
        _text(payload, "password"),
        _text(payload, "displayName", required=False),
    )
    if result.success:
        login_user(result.data)
    return _respond(result, 201)


@bp.post("/auth/login")
def login():
    payload = _payload()
    result = get_services().auth.login(_text(payload, "email"), _text(payload, "password"))
    if result.success:
        login_user(result.data)
    return _respond(result)


@bp.post("/auth/google")
def login_with_google():
    result = get_services().auth.login_with_google()
    if result.success:
        login_user(result.data)
    return _respond(result)


@bp.post("/auth/logout")
def logout():
    result = get_services().auth.logout()
    logout_user()
    return _respond(result)


@bp.post("/auth/reset-password")
def reset_password():
    payload = _payload()
    return _respond(get_services().auth.reset_password(_text(payload, "email")))


@bp.get("/auth/me")
@login_required
def me():
    return _respond(Result.ok(current_user))


@bp.patch("/auth/profile")
@login_required
def update_profile():
    payload = _payload()
    photo_url = payload.get("photoURL")
    if photo_url is not None and not isinstance(photo_url, str):
        raise PayloadError("photoURL must be a string.")
    result = get_services().auth.update_profile(
        _text(payload, "displayName"),
        photo_url,
        uid=_uid(),
    )
    return _respond(result)


# Lesson progress


@bp.get("/progress")
@login_required
def list_progress():
    return _respond(get_services().progress.get_all_progress(_uid()))


@bp.get("/progress/recent")
@login_required
def recent_lessons():
    limit = _number(request.args.get("limit"), "limit", integer=True)
    return _respond(get_services().progress.get_recent_lessons(_uid(), limit))


@bp.get("/progress/module-stats")
@login_required
def module_stats():
    lesson_ids = [lesson_id for lesson_id in request.args.getlist("lesson") if lesson_id]
    return _respond(get_services().progress.get_module_stats(_uid(), lesson_ids))


@bp.get("/progress/<lesson_id>")
@login_required
def get_lesson_progress(lesson_id: str):
    return _respond(get_services().progress.get_lesson_progress(_uid(), lesson_id))


@bp.put("/progress/<lesson_id>")
@login_required
def save_lesson_progress(lesson_id: str):
    payload = _payload()
    completed = payload.get("completed")
    if completed is not None and not isinstance(completed, bool):
        raise PayloadError("completed must be a boolean.")
    result = get_services().progress.save_progress(
        _uid(),
        lesson_id,
        completed=completed,
        score=_number(payload.get("score"), "score"),
        time_spent=_number(payload.get("timeSpent"), "timeSpent"),
    )
    return _respond(result)


@bp.post("/progress/<lesson_id>/complete")
@login_required
def complete_lesson(lesson_id: str):
    payload = _payload()
    score = _number(payload.get("score"), "score")
    return _respond(get_services().progress.complete_lesson(_uid(), lesson_id, score))


@bp.post("/progress/<lesson_id>/time")
@login_required
def add_study_time(lesson_id: str):
    minutes = _required_number(_payload(), "minutes")
    return _respond(get_services().progress.update_study_time(_uid(), lesson_id, minutes))


@bp.get("/stats")
@login_required
def user_stats():
    return _respond(get_services().progress.get_user_stats(_uid()))


@bp.patch("/stats")
@login_required
def update_user_stats():
    payload = _payload()
    fields = {name: _number(value, name) for name, value in payload.items() if value is not None}
    return _respond(get_services().progress.update_user_stats(_uid(), **fields))


# Exercises


@bp.get("/exercises")
@login_required
def list_exercise_results():
    return _respond(get_services().exercises.get_all_results(_uid()))


@bp.get("/exercises/stats")
@login_required
def exercise_stats():
    return _respond(get_services().exercises.get_exercise_stats(_uid()))


@bp.get("/exercises/review")
@login_required
def exercises_needing_review():
    threshold = _number(request.args.get("threshold"), "threshold")
    return _respond(get_services().exercises.get_exercises_needing_review(_uid(), threshold))


@bp.get("/exercises/recent")
@login_required
def recent_attempts():
    limit = _number(request.args.get("limit"), "limit", integer=True)
    return _respond(get_services().exercises.get_recent_attempts(_uid(), limit))


@bp.get("/exercises/<exercise_id>")
@login_required
def get_exercise_result(exercise_id: str):
    return _respond(get_services().exercises.get_exercise_result(_uid(), exercise_id))


@bp.post("/exercises/<exercise_id>/results")
@login_required
def save_exercise_result(exercise_id: str):
    payload = _payload()
    mistakes = payload.get("mistakes") or []
    if not isinstance(mistakes, list):
        raise PayloadError("mistakes must be a list.")
    result = get_services().exercises.save_result(
        _uid(),
        exercise_id,
        score=_required_number(payload, "score"),
        answers=payload.get("answers") or [],
        mistakes=mistakes,
        task_results=payload.get("taskResults") or [],
    )
    return _respond(result, 201)


# Dictionary


@bp.get("/dictionary")
@login_required
def list_words():
    query = request.args.get("q", "")
    dictionary = get_services().dictionary
    if query:
        return _respond(dictionary.search_words(_uid(), query))
    return _respond(dictionary.get_all_words(_uid()))


@bp.post("/dictionary")
@login_required
def add_word():
    payload = _payload()
    result = get_services().dictionary.add_word(
        _uid(),
        _text(payload, "word"),
        _text(payload, "definition"),
        _text(payload, "example", required=False),
    )
    return _respond(result, 201)


@bp.get("/dictionary/stats")
@login_required
def dictionary_stats():
    return _respond(get_services().dictionary.get_dictionary_stats(_uid()))


@bp.get("/dictionary/unmastered")
@login_required
def unmastered_words():
    return _respond(get_services().dictionary.get_unmastered_words(_uid()))


@bp.patch("/dictionary/<word_id>")
@login_required
def update_word(word_id: str):
    return _respond(get_services().dictionary.update_word(_uid(), word_id, **_payload()))


@bp.delete("/dictionary/<word_id>")
@login_required
def delete_word(word_id: str):
    return _respond(get_services().dictionary.delete_word(_uid(), word_id))


@bp.post("/dictionary/<word_id>/mastered")
@login_required
def mark_word_mastered(word_id: str):
    mastered = _payload().get("mastered", True)
    if not isinstance(mastered, bool):
        raise PayloadError("mastered must be a boolean.")
    return _respond(get_services().dictionary.mark_as_mastered(_uid(), word_id, mastered))


# Skills


@bp.get("/skills")
@login_required
def list_skills():
    category = request.args.get("category")
    skills = get_services().skills
    if category:
        return _respond(skills.get_by_category(_uid(), category))
    return _respond(skills.get_all(_uid()))


@bp.post("/skills/initialize")
@login_required
def initialize_skills():
    return _respond(get_services().skills.initialize(_uid()), 201)


@bp.get("/skills/stats")
@login_required
def skill_stats():
    return _respond(get_services().skills.get_stats(_uid()))


@bp.get("/skills/needing-practice")
@login_required
def skills_needing_practice():
    days = _number(request.args.get("days"), "days", integer=True)
    if days is None:
        days = current_app.config["COURSE_SETTINGS"].SKILL_STALE_DAYS
    return _respond(get_services().skills.get_skills_needing_practice(_uid(), days))


@bp.get("/skills/<skill_id>")
@login_required
def get_skill(skill_id: str):
    return _respond(get_services().skills.get_skill(_uid(), skill_id))


@bp.post("/skills/<skill_id>/practice")
@login_required
def practice_skill(skill_id: str):
    payload = _payload()
    result = get_services().skills.update_from_practice(
        _uid(),
        skill_id,
        _required_number(payload, "correct", integer=True),
        _required_number(payload, "total", integer=True),
    )
    return _respond(result)


@bp.put("/skills/<skill_id>/progress")
@login_required
def set_skill_progress(skill_id: str):
    payload = _payload()
    result = get_services().skills.update_direct(
        _uid(),
        skill_id,
        _required_number(payload, "progress"),
        _required_number(payload, "correctAnswers", integer=True),
        _required_number(payload, "totalAnswers", integer=True),
    )
    return _respond(result)


@bp.post("/skills/<skill_id>/reset")
@login_required
def reset_skill(skill_id: str):
    return _respond(get_services().skills.reset(_uid(), skill_id))
