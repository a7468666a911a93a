"""HTTP flow: select class, edit decisions, preview, commit."""

from httpx import AsyncClient

from app.store import paths

from .conftest import SCHOOL_ID, seed_school

BASE = f"/api/v1/schools/{SCHOOL_ID}/promotions"


async def test_list_classes(client: AsyncClient, store) -> None:
    await seed_school(store, rosters={"Class 1": ["a1", "a2"]})
    response = await client.get(f"{BASE}/classes")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "loaded"
    assert [c["name"] for c in data["classes"]][:4] == ["Nursery", "Prep", "Class 1", "Class 2"]
    assert data["classes"][2]["student_count"] == 2


async def test_full_promotion_flow(client: AsyncClient, store) -> None:
    await seed_school(store, rosters={"Class 5": ["A", "B", "C"]}, attendance_days=3)

    response = await client.post(f"{BASE}/sessions", json={"class_id": "class-5"})
    assert response.status_code == 201
    roster = response.json()
    session_id = roster["session_id"]
    assert roster["status"] == "loaded"
    assert roster["school_class"]["name"] == "Class 5"
    assert {s["decision"] for s in roster["students"]} == {"promote"}
    assert roster["students"][0]["next_class_name"] == "Class 6"

    response = await client.put(f"{BASE}/sessions/{session_id}/students/B/decision", json={"decision": "retain"})
    assert response.status_code == 200
    assert response.json()["decision"] == "retain"

    response = await client.put(f"{BASE}/sessions/{session_id}/students/C/decision", json={"decision": "leave"})
    assert response.status_code == 200

    response = await client.put(f"{BASE}/sessions/{session_id}/students/B/exam-score", json={"exam_score": "30"})
    assert response.status_code == 200
    assert response.json()["result"] == "fail"

    response = await client.put(f"{BASE}/sessions/{session_id}/students/B/result", json={"result": "pass"})
    assert response.json()["result"] == "pass"

    response = await client.get(f"{BASE}/sessions/{session_id}/preview")
    assert response.status_code == 200
    preview = response.json()
    assert preview["move_operation_count"] == 6
    assert preview["purge_operation_count"] == 3
    assert [a["action"]["kind"] for a in preview["actions"]] == ["promote", "retain", "leave"]

    response = await client.post(f"{BASE}/sessions/{session_id}/commit")
    assert response.status_code == 200
    outcome = response.json()
    assert outcome["state"] == "done"
    assert outcome["moves"]["committed_chunks"] == [0]
    assert outcome["purge"]["total_operations"] == 3

    assert await store.get(f"{paths.roster_collection(SCHOOL_ID, 'class-6')}/A") is not None
    retained = await store.get(f"{paths.roster_collection(SCHOOL_ID, 'class-5')}/B")
    assert retained["retained"] is True
    assert retained["result"] == "pass"
    assert await store.get(f"{paths.master_registry_collection(SCHOOL_ID)}/C") is None

    # Session is gone after a successful commit
    response = await client.get(f"{BASE}/sessions/{session_id}")
    assert response.status_code == 404


async def test_set_all_decisions(client: AsyncClient, store) -> None:
    await seed_school(store, rosters={"Class 3": ["x", "y"]})
    session_id = (await client.post(f"{BASE}/sessions", json={"class_id": "class-3"})).json()["session_id"]

    response = await client.put(f"{BASE}/sessions/{session_id}/decisions", json={"decision": "demote"})
    assert response.status_code == 200
    assert {s["decision"] for s in response.json()["students"]} == {"demote"}


async def test_failed_commit_returns_502_with_report(client: AsyncClient, store) -> None:
    await seed_school(store, rosters={"Class 5": ["A"]})
    session_id = (await client.post(f"{BASE}/sessions", json={"class_id": "class-5"})).json()["session_id"]
    store.fail_on = 1

    response = await client.post(f"{BASE}/sessions/{session_id}/commit")

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["state"] == "failed"
    assert detail["moves"]["pending_chunks"] == [0]
    # Roster stays available for another attempt
    assert (await client.get(f"{BASE}/sessions/{session_id}")).status_code == 200


async def test_unknown_class_and_session(client: AsyncClient, store) -> None:
    await seed_school(store)
    response = await client.post(f"{BASE}/sessions", json={"class_id": "nope"})
    assert response.status_code == 404

    response = await client.put(f"{BASE}/sessions/missing/decisions", json={"decision": "retain"})
    assert response.status_code == 404


async def test_unknown_student_and_bad_decision(client: AsyncClient, store) -> None:
    await seed_school(store, rosters={"Class 5": ["A"]})
    session_id = (await client.post(f"{BASE}/sessions", json={"class_id": "class-5"})).json()["session_id"]

    response = await client.put(f"{BASE}/sessions/{session_id}/students/Z/decision", json={"decision": "retain"})
    assert response.status_code == 404

    response = await client.put(f"{BASE}/sessions/{session_id}/students/A/decision", json={"decision": "expel"})
    assert response.status_code == 422


async def test_discard_session(client: AsyncClient, store) -> None:
    await seed_school(store, rosters={"Class 5": ["A"]})
    session_id = (await client.post(f"{BASE}/sessions", json={"class_id": "class-5"})).json()["session_id"]

    assert (await client.delete(f"{BASE}/sessions/{session_id}")).status_code == 204
    assert (await client.delete(f"{BASE}/sessions/{session_id}")).status_code == 404
    assert await store.count(paths.roster_collection(SCHOOL_ID, "class-5")) == 1
