from config.settings import get_settings
from course.services import build_services
from course.services.demo import seed_demo_data


def test_seed_demo_data_creates_one_record_of_each_kind(store, user_id):
    services = build_services(get_settings(), store)

    results = seed_demo_data(services, user_id)

    assert all(result.success for result in results)
    lesson = services.progress.get_lesson_progress(user_id, "lesson-01-vowels-checked").data
    assert (lesson.completed, lesson.score, lesson.time_spent) == (True, 95, 45)

    skill = services.skills.get_skill(user_id, "vowels-checked").data
    assert (skill.progress, skill.level, skill.practice_count) == (90, 1, 1)

    exercise = services.exercises.get_exercise_result(user_id, "exercise-01-vowels-roots").data
    assert exercise.score == 88
    assert exercise.completed is True

    words = services.dictionary.get_all_words(user_id).data
    assert [entry.word for entry in words] == ["орфография"]
    assert services.progress.get_user_stats(user_id).data.exercises_completed == 1


def test_demo_account_is_seeded_on_sign_in(app, app_context):
    services = app.extensions["course"]

    registered = services.auth.register("demo@example.com", "demo-password")

    assert registered.success
    stats = services.skills.get_stats(registered.data.uid).data
    assert stats["inProgressSkills"] == 1


def test_other_accounts_are_not_seeded(app, app_context):
    services = app.extensions["course"]

    registered = services.auth.register("student@example.com", "secret1")

    assert services.dictionary.get_all_words(registered.data.uid).data == []


def test_seed_demo_command(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed-demo", "cli-user"])

    assert result.exit_code == 0
    assert "Demo data created for cli-user." in result.output
    services = app.extensions["course"]
    assert len(services.dictionary.get_all_words("cli-user").data) == 1


def test_init_skills_command(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["init-skills", "cli-user"])

    assert result.exit_code == 0
    assert "Initialized 31 skills for cli-user." in result.output
