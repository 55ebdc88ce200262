"""Route tests for learning_app.py."""

import pytest
from fastapi.testclient import TestClient

from learning_app import create_app
from learning_service import LearningPathService
from learning_store import InMemoryStore


@pytest.fixture
def client():
    return TestClient(create_app(LearningPathService(InMemoryStore())))


def create_goal_path(client, skills=("X", "Y"), difficulty=4):
    resp = client.post("/api/paths/from-goal", json={
        "title": "Learn X and Y",
        "target_skills": list(skills),
        "difficulty": difficulty,
        "estimated_time": 120,
    })
    assert resp.status_code == 201
    return resp.json()


def test_create_path_from_goal(client):
    body = create_goal_path(client)
    assert body["goal_id"].startswith("goal_")
    path = body["path"]
    assert len(path["steps"]) == 7
    assert path["stats"]["total_steps"] == 7
    assert client.get(f"/api/goals/{body['goal_id']}").status_code == 200


def test_learning_flow(client):
    path = create_goal_path(client)["path"]
    path_id = path["id"]
    first, second = path["steps"][0]["id"], path["steps"][1]["id"]

    resp = client.post(f"/api/paths/{path_id}/start", json={"user_id": "u1"})
    assert resp.status_code == 201
    assert resp.json()["current_step_id"] == first

    resp = client.get(f"/api/paths/{path_id}/next-steps", params={"user_id": "u1"})
    assert [s["id"] for s in resp.json()] == [first]

    resp = client.post(
        f"/api/paths/{path_id}/steps/{first}/complete",
        json={"user_id": "u1", "time_spent": 15, "rating": 2, "note": "hard"},
    )
    assert resp.status_code == 200
    progress = resp.json()
    assert progress["completed_steps"] == [first]
    assert progress["current_step_id"] == second
    assert progress["notes"] == {first: "hard"}

    resp = client.get(f"/api/paths/{path_id}/recommendations", params={"user_id": "u1"})
    rec = resp.json()
    assert [s["id"] for s in rec["review_steps"]] == [first]
    assert [s["id"] for s in rec["next_steps"]] == [second]

    resp = client.get("/api/users/u1/stats")
    assert resp.json()["total_paths"] == 1
    assert resp.json()["in_progress_paths"] == 1


def test_topic_path_and_search(client):
    resp = client.post("/api/paths/from-topic", json={
        "topic": "Python",
        "difficulty": "intermediate",
        "preferences": {"preferred_types": ["concept", "assessment"]},
    })
    assert resp.status_code == 201
    assert [s["type"] for s in resp.json()["steps"]] == ["concept", "assessment"]

    resp = client.post("/api/paths/search", json={
        "query": "python",
        "filters": {"category": "programming languages"},
    })
    assert len(resp.json()) == 1


def test_not_found_maps_to_404(client):
    resp = client.post("/api/paths/path_missing/start", json={"user_id": "u1"})
    assert resp.status_code == 404
    assert resp.json()["kind"] == "not_found"


def test_invalid_input_maps_to_400(client):
    path_id = create_goal_path(client)["path"]["id"]
    client.post(f"/api/paths/{path_id}/start", json={"user_id": "u1"})
    step_id = client.get(f"/api/paths/{path_id}").json()["steps"][0]["id"]
    resp = client.post(
        f"/api/paths/{path_id}/steps/{step_id}/complete",
        json={"user_id": "u1", "time_spent": 5, "rating": 7},
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "invalid_input"


def test_search_rejects_inverted_range(client):
    resp = client.post("/api/paths/search", json={"filters": {"min_duration": 5, "max_duration": 1}})
    assert resp.status_code == 400


def test_import_rejects_cycle(client):
    resp = client.post("/api/paths", json={
        "title": "Loop",
        "steps": [
            {"id": "a", "title": "A", "prerequisites": ["b"]},
            {"id": "b", "title": "B", "prerequisites": ["a"]},
        ],
    })
    assert resp.status_code == 400


def test_delete_path_cascades(client):
    path_id = create_goal_path(client)["path"]["id"]
    client.post(f"/api/paths/{path_id}/start", json={"user_id": "u1"})

    resp = client.delete(f"/api/paths/{path_id}")
    assert resp.json() == {"deleted": True, "path_id": path_id}
    assert client.get(f"/api/paths/{path_id}").status_code == 404
    assert client.get(f"/api/paths/{path_id}/progress/u1").status_code == 404


def test_goal_lifecycle(client):
    resp = client.post("/api/goals", json={
        "title": "SQL",
        "target_skills": ["database design"],
        "difficulty": 2,
        "estimated_time": 90,
    })
    goal_id = resp.json()["id"]
    path = client.post(f"/api/goals/{goal_id}/path").json()
    assert path["category"] == "databases"

    assert client.delete(f"/api/goals/{goal_id}").status_code == 200
    assert client.get(f"/api/goals/{goal_id}").status_code == 404
    assert client.get(f"/api/paths/{path['id']}").status_code == 200
    assert client.get("/api/goals").json() == []


def test_patch_path(client):
    path_id = create_goal_path(client)["path"]["id"]
    resp = client.patch(f"/api/paths/{path_id}", json={"tags": ["renamed"]})
    assert resp.json()["tags"] == ["renamed"]
