"""Smoke tests for the JSON API."""
import pytest


def _register(client, email="student@example.com", password="secret1"):
    response = client.post(
        "/auth/register",
        json={"email": email, "password": password, "displayName": "Ученик"},
    )
    assert response.status_code == 201
    return response.get_json()["data"]


@pytest.mark.smoke
def test_health_endpoint_returns_ok(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "service": "course"}


@pytest.mark.smoke
@pytest.mark.parametrize("path", ["/skills", "/progress", "/exercises", "/dictionary", "/stats", "/auth/me"])
def test_course_endpoints_require_authentication(client, path):
    response = client.get(path)

    assert response.status_code == 401
    assert response.get_json()["success"] is False


@pytest.mark.smoke
def test_register_and_fetch_profile(client):
    user = _register(client)

    response = client.get("/auth/me")

    assert response.status_code == 200
    assert response.get_json()["data"]["uid"] == user["uid"]
    assert response.get_json()["data"]["displayName"] == "Ученик"


@pytest.mark.smoke
def test_login_failure_returns_mapped_message(client):
    _register(client)
    client.post("/auth/logout")

    response = client.post("/auth/login", json={"email": "student@example.com", "password": "nope-nope"})

    assert response.status_code == 400
    assert response.get_json() == {"success": False, "error": "Wrong password."}


@pytest.mark.smoke
def test_logout_ends_session(client):
    _register(client)

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/skills").status_code == 401


@pytest.mark.smoke
def test_skill_matrix_flow(client):
    _register(client)

    skills = client.get("/skills")
    assert skills.status_code == 200
    assert len(skills.get_json()["data"]) == 31

    practice = client.post("/skills/vowels-checked/practice", json={"correct": 9, "total": 10})
    assert practice.status_code == 200
    assert practice.get_json()["data"] == {"progress": 90, "level": 1, "practiceCount": 1}

    skill = client.get("/skills/vowels-checked").get_json()["data"]
    assert skill["progress"] == 90
    assert skill["lastPracticed"] is not None

    stats = client.get("/skills/stats").get_json()["data"]
    assert stats["total"] == 31
    assert stats["inProgressSkills"] == 1

    orthography = client.get("/skills?category=orthography").get_json()["data"]
    assert len(orthography) == 15


@pytest.mark.smoke
def test_unknown_skill_is_404(client):
    _register(client)
    client.get("/skills")

    response = client.post("/skills/no-such-skill/practice", json={"correct": 1, "total": 1})

    assert response.status_code == 404
    assert response.get_json()["error"] == "Skill not found."


@pytest.mark.smoke
def test_bad_payload_is_400(client):
    _register(client)

    response = client.post("/skills/vowels-checked/practice", json={"correct": "many", "total": 1})

    assert response.status_code == 400
    assert "correct" in response.get_json()["error"]


@pytest.mark.smoke
def test_progress_and_exercise_endpoints(client):
    _register(client)

    saved = client.put("/progress/lesson-01", json={"completed": True, "score": 95, "timeSpent": 45})
    assert saved.status_code == 200
    assert saved.get_json()["data"]["score"] == 95

    module = client.get("/progress/module-stats?lesson=lesson-01&lesson=lesson-02").get_json()["data"]
    assert module["completed"] == 1
    assert module["percentage"] == 50

    result = client.post(
        "/exercises/exercise-01/results",
        json={"score": 88, "answers": ["a"], "mistakes": ["н/нн"]},
    )
    assert result.status_code == 201
    assert result.get_json()["data"]["attempts"] == 1

    stats = client.get("/exercises/stats").get_json()["data"]
    assert stats["topMistakes"] == [{"mistake": "н/нн", "count": 1}]
    assert client.get("/stats").get_json()["data"]["exercisesCompleted"] == 1


@pytest.mark.smoke
def test_dictionary_endpoints(client):
    _register(client)

    added = client.post("/dictionary", json={"word": "Орфография", "definition": "Правила письма"})
    assert added.status_code == 201
    word_id = added.get_json()["data"]["id"]
    assert word_id == "орфография"

    search = client.get("/dictionary?q=правила").get_json()["data"]
    assert [entry["word"] for entry in search] == ["Орфография"]

    assert client.post(f"/dictionary/{word_id}/mastered", json={}).status_code == 200
    assert client.get("/dictionary/stats").get_json()["data"]["mastered"] == 1
    assert client.delete(f"/dictionary/{word_id}").status_code == 200
    assert client.get("/dictionary").get_json()["data"] == []


@pytest.mark.smoke
def test_users_only_see_their_own_data(client):
    _register(client, "first@example.com")
    client.post("/dictionary", json={"word": "слово", "definition": "значение"})
    client.post("/auth/logout")

    _register(client, "second@example.com")

    assert client.get("/dictionary").get_json()["data"] == []
