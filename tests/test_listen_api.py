import pytest
from fastapi.testclient import TestClient

from listening_engine.main import app
from listening_engine.routers.listen import get_ai, get_store


@pytest.fixture
def client(store, fake_ai):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_ai] = lambda: fake_ai
    # Not used as a context manager, so the startup hook never touches the real database
    yield TestClient(app)
    app.dependency_overrides.clear()


def _snapshot(questions, wrong=()):
    return {
        "exercise_id": "a1-1",
        "questions": [q.model_dump() for q in questions],
        "answers": {q.id: (q.options[1] if q.id in wrong else q.correct) for q in questions},
    }


def test_info(client):
    res = client.get("/info")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_levels_mark_locked_ones(client):
    res = client.get("/listen/levels", params={"learner_level": "B1"})
    levels = {o["level"]: o["locked"] for o in res.json()["levels"]}
    assert levels["B1"] is False
    assert levels["B2"] is True


def test_exercise_listing(client):
    res = client.get("/listen/exercises", params={"level": "a1"})
    assert res.status_code == 200
    assert res.json()["level"] == "A1"
    assert res.json()["exercises"][0]["id"] == "a1-1"

    assert client.get("/listen/exercises", params={"level": "C1", "learner_level": "B1"}).status_code == 403
    assert client.get("/listen/exercises", params={"level": "Z9"}).status_code == 404


def test_timeline(client):
    res = client.get("/listen/exercises/a1-1/timeline")
    assert res.status_code == 200
    body = res.json()
    sentences = body["sentences"]
    assert sentences[0] == {"index": 0, "text": "Hello.", "start": 0.0, "end": pytest.approx(0.4)}
    assert body["total_duration"] == pytest.approx(sentences[-1]["end"])

    faster = client.get("/listen/exercises/a1-1/timeline", params={"rate": 2.0}).json()
    assert faster["total_duration"] == pytest.approx(body["total_duration"] / 2)

    assert client.get("/listen/exercises/zz-9/timeline").status_code == 404


def test_generate_questions(client, fake_ai, questions):
    res = client.post("/listen/questions", json={"exercise_id": "a1-1"})
    assert res.status_code == 200
    assert res.json()["level"] == "A1"
    assert len(res.json()["questions"]) == len(questions)
    assert fake_ai.question_calls[0][2] == 10

    fake_ai.fail_questions = True
    res = client.post("/listen/questions", json={"exercise_id": "a1-1"})
    assert res.status_code == 502
    assert res.json()["detail"] == "generation failed"


def test_analysis(client, fake_ai, questions):
    res = client.post("/listen/analysis", json=_snapshot(questions, wrong={"q2"}))
    assert res.status_code == 200
    assert res.json()["summary"] == "Good listening."
    assert fake_ai.analysis_calls[0][4] == 80

    fake_ai.analysis = None
    res = client.post("/listen/analysis", json=_snapshot(questions))
    assert res.status_code == 503


def test_incomplete_attempts_are_rejected(client, questions):
    body = _snapshot(questions)
    del body["answers"]["q4"]
    assert client.post("/listen/analysis", json=body).status_code == 400

    body = _snapshot(questions)
    body["answers"]["q1"] = "made up"
    assert client.post("/listen/activities", json=body).status_code == 400


def test_save_list_and_fetch_activity(client, questions):
    res = client.post(
        "/listen/activities",
        json=_snapshot(questions, wrong={"q5"}),
        headers={"X-Username": "ana"},
    )
    assert res.status_code == 201
    saved = res.json()
    assert saved["percent"] == 80
    assert saved["score"] == {"correct_count": 4, "total": 5}
    assert saved["exercise_title"] == "My Name and My Pet"
    assert saved["username"] == "ana"

    listed = client.get("/listen/activities", headers={"X-Username": "ana"}).json()["activities"]
    assert [a["id"] for a in listed] == [saved["id"]]
    assert client.get("/listen/activities").json()["activities"] == []

    fetched = client.get(f"/listen/activities/{saved['id']}", headers={"X-Username": "ana"})
    assert fetched.status_code == 200
    assert fetched.json()["answers"]["q5"] == questions[4].options[1]

    assert client.get(f"/listen/activities/{saved['id']}", headers={"X-Username": "bob"}).status_code == 404
