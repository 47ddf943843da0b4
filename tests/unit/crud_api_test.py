"""End-to-end CRUD behaviour through the FastAPI app over the in-memory store."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient

from schoolhub.api.app import create_app
from schoolhub.core.ports.storage import Record
from schoolhub.core.registry import HookContext, ResourceConfig, ResourceHooks, ResourceRegistry
from schoolhub.db import InMemoryResourceStore
from schoolhub.resources.schemas import GradeForm, GradeUpdate
from schoolhub.resources.transforms import grade_response
from tests.conftest import School, student_payload


class RecordingHooks(ResourceHooks):
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def before_create(self, ctx: HookContext, data: Record) -> Record:
        self.calls.append("before_create")
        return data

    async def after_create(self, ctx: HookContext, record: Record) -> None:
        self.calls.append("after_create")

    async def before_update(self, ctx: HookContext, id: str, data: Record) -> Record:
        self.calls.append("before_update")
        return data

    async def after_update(self, ctx: HookContext, id: str, record: Record) -> None:
        self.calls.append("after_update")

    async def before_delete(self, ctx: HookContext, id: str) -> None:
        self.calls.append("before_delete")

    async def after_delete(self, ctx: HookContext, id: str) -> None:
        self.calls.append("after_delete")


class FailingAfterCreate(ResourceHooks):
    async def after_create(self, ctx: HookContext, record: Record) -> None:
        raise RuntimeError("notification service down")


def _grade_app(store: InMemoryResourceStore, hooks: ResourceHooks) -> TestClient:
    config = ResourceConfig(
        resource_name="grade",
        model="grade",
        create_schema=GradeForm,
        update_schema=GradeUpdate,
        transform_response=grade_response,
        hooks=hooks,
    )
    return TestClient(create_app(registry=ResourceRegistry([config]), store=store))


def _seed_grades(store: InMemoryResourceStore, count: int) -> None:
    async def _run() -> None:
        for i in range(count):
            await store.create("grade", {"name": f"Grade {i}", "order": i})

    asyncio.run(_run())


def _seed_student(store: InMemoryResourceStore, school: School, roll: str, **extra: Any) -> Record:
    data = {
        "first_name": "Kid",
        "last_name": roll,
        "roll_number": roll,
        "gender": "male",
        "grade": {"connect": {"id": school.grade_id}},
        "section": {"connect": {"id": school.section_id}},
        **extra,
    }
    return asyncio.run(store.create("student", data))


def _ids(resp: Any) -> set[str]:
    data = resp.json()["data"]
    items = data["data"] if isinstance(data, dict) else data
    return {item["id"] for item in items}


class TestList:
    def test_unset_filters_match_no_filters(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        _seed_student(store, school, "R1", status="active")
        _seed_student(store, school, "R2", status="inactive")

        baseline = client.get("/api/students")
        unset = client.get("/api/students", params={"status": "all", "gradeId": ""})

        assert baseline.status_code == unset.status_code == 200
        assert _ids(baseline) == _ids(unset)
        assert len(_ids(baseline)) == 2

    def test_second_page(self, client: TestClient, store: InMemoryResourceStore) -> None:
        _seed_grades(store, 25)
        resp = client.get("/api/grades", params={"page": 2, "pageSize": 10})
        assert resp.status_code == 200
        body = resp.json()["data"]
        assert len(body["data"]) == 10
        assert body["pagination"] == {"page": 2, "pageSize": 10, "total": 25, "totalPages": 3}
        assert [g["order"] for g in body["data"]] == list(range(10, 20))

    def test_page_past_the_end_is_empty(self, client: TestClient, store: InMemoryResourceStore) -> None:
        _seed_grades(store, 25)
        resp = client.get("/api/grades", params={"page": 4, "pageSize": 10})
        assert resp.status_code == 200
        body = resp.json()["data"]
        assert body["data"] == []
        assert body["pagination"]["total"] == 25

    def test_empty_collection_has_zero_pages(self, client: TestClient) -> None:
        body = client.get("/api/teachers", params={"page": 1, "pageSize": 10}).json()["data"]
        assert body["pagination"] == {"page": 1, "pageSize": 10, "total": 0, "totalPages": 0}

    def test_without_pagination_returns_a_bare_list(self, client: TestClient, store: InMemoryResourceStore) -> None:
        _seed_grades(store, 3)
        data = client.get("/api/grades").json()["data"]
        assert isinstance(data, list)
        assert [g["name"] for g in data] == ["Grade 0", "Grade 1", "Grade 2"]
        assert set(data[0]) == {"id", "name", "order"}

    def test_total_ignores_pagination(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        for i in range(7):
            _seed_student(store, school, f"R{i}", status="active" if i % 2 else "inactive")
        everything = client.get("/api/students", params={"status": "active"}).json()["data"]
        page = client.get("/api/students", params={"status": "active", "page": 2, "pageSize": 2}).json()["data"]
        assert page["pagination"]["total"] == len(everything) == 3
        assert len(page["data"]) == 1

    def test_date_between_is_inclusive_of_whole_days(
        self, client: TestClient, store: InMemoryResourceStore, school: School
    ) -> None:
        inside = _seed_student(store, school, "IN", admission_date=datetime(2024, 1, 31, 23, 30))
        _seed_student(store, school, "OUT", admission_date=datetime(2024, 2, 1, 0, 0, 1))
        resp = client.get("/api/students", params={"enrolledBetween": "2024-01-01,2024-01-31"})
        assert _ids(resp) == {inside["id"]}

    def test_in_filter_and_search(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        a = _seed_student(store, school, "R1", first_name="Asha", status="active")
        _seed_student(store, school, "R2", first_name="Bala", status="graduated")
        c = _seed_student(store, school, "R3", first_name="Chitra", status="inactive")

        assert _ids(client.get("/api/students", params={"status": "active,inactive"})) == {a["id"], c["id"]}
        assert _ids(client.get("/api/students", params={"search": "ASH"})) == {a["id"]}

    def test_repeated_keys_use_the_last_value(self, client: TestClient, store: InMemoryResourceStore) -> None:
        _seed_grades(store, 3)
        params = [("page", "1"), ("page", "3"), ("pageSize", "1"), ("sortBy", "order"), ("sortOrder", "asc"), ("sortOrder", "desc")]
        resp = client.get("/api/grades", params=params)
        assert resp.status_code == 200
        body = resp.json()["data"]
        assert body["pagination"]["page"] == 3
        assert [g["name"] for g in body["data"]] == ["Grade 0"]

    def test_sorting(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        for roll, name in [("R1", "Meera"), ("R2", "Arun"), ("R3", "Zoya")]:
            _seed_student(store, school, roll, first_name=name)
        data = client.get("/api/students", params={"sortBy": "firstName", "sortOrder": "desc"}).json()["data"]
        assert [s["firstName"] for s in data] == ["Zoya", "Meera", "Arun"]

    @pytest.mark.parametrize(
        ("params", "path"),
        [
            ({"page": "0", "pageSize": "10"}, "page"),
            ({"page": "1", "pageSize": "ten"}, "pageSize"),
            ({"sortBy": "password"}, "sortBy"),
            ({"sortOrder": "sideways"}, "sortOrder"),
            ({"enrolledBetween": "2024-01-01"}, "enrolledBetween"),
            ({"gender": "robot"}, "gender"),
        ],
    )
    def test_invalid_query_parameters(self, client: TestClient, params: dict[str, str], path: str) -> None:
        resp = client.get("/api/students", params=params)
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "BAD_REQUEST"
        assert [i["path"] for i in error["details"]["issues"]] == [[path]]


class TestRetrieve:
    def test_found(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        student = _seed_student(store, school, "R1")
        resp = client.get(f"/api/students/{student['id']}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["rollNumber"] == "R1"
        assert body["data"]["gradeName"] == "Grade 5"

    def test_missing(self, client: TestClient) -> None:
        resp = client.get("/api/students/nope")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": {"message": "student not found", "code": "NOT_FOUND"}}


class TestCreate:
    def test_student(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        resp = client.post("/api/students", json=student_payload(school))
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        assert data["name"] == "Asha Verma"
        assert data["sectionName"] == "A"
        assert data["status"] == "active"

        (row,) = store.rows("student")
        assert row["academic_year_id"] == school.academic_year_id
        assert row["user_id"] == store.rows("user")[0]["id"]
        assert [(e["action"], e["entity_id"]) for e in store.rows("audit_log")] == [("create", data["id"])]

    def test_missing_required_field(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        payload = student_payload(school)
        del payload["firstName"]
        resp = client.post("/api/students", json=payload)

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["message"] == "Validation failed"
        assert ["firstName"] in [i["path"] for i in error["details"]["issues"]]
        assert store.rows("student") == []
        assert store.rows("user") == []

    def test_duplicate_roll_number_is_a_conflict(
        self, client: TestClient, store: InMemoryResourceStore, school: School
    ) -> None:
        assert client.post("/api/students", json=student_payload(school)).status_code == 201
        resp = client.post("/api/students", json=student_payload(school, firstName="Anya"))

        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "CONFLICT"
        assert [i["path"] for i in error["details"]["issues"]] == [["rollNumber"]]
        assert len(store.rows("student")) == 1
        assert len(store.rows("user")) == 1
        assert [e["action"] for e in store.rows("audit_log")] == ["create"]

    def test_malformed_json(self, client: TestClient) -> None:
        resp = client.post("/api/grades", content=b"{not json", headers={"content-type": "application/json"})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Malformed JSON body"

    def test_hook_order(self, store: InMemoryResourceStore) -> None:
        hooks = RecordingHooks()
        resp = _grade_app(store, hooks).post("/api/grades", json={"name": "Grade 1", "order": 1})
        assert resp.status_code == 201
        assert hooks.calls == ["before_create", "after_create"]

    def test_failing_after_hook_rolls_back(self, store: InMemoryResourceStore) -> None:
        resp = _grade_app(store, FailingAfterCreate()).post("/api/grades", json={"name": "Grade 1"})
        assert resp.status_code == 500
        assert resp.json()["error"] == {"message": "Internal server error", "code": "INTERNAL_ERROR"}
        assert store.rows("grade") == []


class TestUpdate:
    def test_patch_missing_id_is_404_without_side_effects(
        self, client: TestClient, store: InMemoryResourceStore, school: School
    ) -> None:
        resp = client.patch("/api/students/does-not-exist", json={"phone": "9999999999"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"
        assert store.rows("audit_log") == []

    @pytest.mark.parametrize("method", ["put", "patch", "delete"])
    def test_missing_id_skips_hooks(self, store: InMemoryResourceStore, method: str) -> None:
        hooks = RecordingHooks()
        client = _grade_app(store, hooks)
        kwargs: dict[str, Any] = {} if method == "delete" else {"json": {"name": "X"}}
        resp = getattr(client, method)("/api/grades/missing", **kwargs)
        assert resp.status_code == 404
        assert hooks.calls == []

    def test_invalid_body_skips_hooks_and_storage(self, store: InMemoryResourceStore) -> None:
        _seed_grades(store, 1)
        (grade,) = store.rows("grade")
        hooks = RecordingHooks()
        resp = _grade_app(store, hooks).patch(f"/api/grades/{grade['id']}", json={"order": -1})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["issues"]
        assert hooks.calls == []
        assert store.rows("grade")[0]["order"] == 0

    def test_renaming_onto_a_taken_roll_number_is_a_conflict(
        self, client: TestClient, store: InMemoryResourceStore, school: School
    ) -> None:
        _seed_student(store, school, "R1")
        other = _seed_student(store, school, "R2")
        resp = client.patch(f"/api/students/{other['id']}", json={"rollNumber": "R1"})
        assert resp.status_code == 409
        assert resp.json()["error"]["details"]["issues"][0]["path"] == ["rollNumber"]
        assert sorted(r["roll_number"] for r in store.rows("student")) == ["R1", "R2"]

    def test_invalid_body_on_missing_id_is_a_validation_error(self, store: InMemoryResourceStore) -> None:
        resp = _grade_app(store, RecordingHooks()).patch("/api/grades/missing", json={"order": -1})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"

    def test_academic_year_end_cannot_move_before_stored_start(
        self, client: TestClient, store: InMemoryResourceStore, school: School
    ) -> None:
        resp = client.patch(f"/api/academic-years/{school.academic_year_id}", json={"endDate": "2020-01-01"})
        assert resp.status_code == 400
        assert [i["path"] for i in resp.json()["error"]["details"]["issues"]] == [["endDate"]]
        (year,) = store.rows("academic_year")
        assert year["end_date"] == datetime(2025, 6, 30)
        assert store.rows("audit_log") == []

    def test_academic_year_reversed_pair_is_rejected(self, client: TestClient, school: School) -> None:
        resp = client.patch(
            f"/api/academic-years/{school.academic_year_id}",
            json={"startDate": "2026-08-01", "endDate": "2026-01-01"},
        )
        assert resp.status_code == 400

    def test_academic_year_start_can_move_within_range(self, client: TestClient, school: School) -> None:
        resp = client.patch(f"/api/academic-years/{school.academic_year_id}", json={"startDate": "2024-07-15"})
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["startDate"] == "2024-07-15"

    def test_patch_student(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        created = client.post("/api/students", json=student_payload(school)).json()["data"]
        resp = client.patch(
            f"/api/students/{created['id']}",
            json={"section": school.other_section_id, "guardianPhone": "9000000000"},
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["section"] == school.other_section_id
        assert data["sectionName"] == "B"
        assert data["guardianPhone"] == "9000000000"
        assert data["firstName"] == "Asha"
        assert [e["action"] for e in store.rows("audit_log")] == ["create", "update"]

    def test_response_can_be_sent_back_as_an_update(
        self, client: TestClient, store: InMemoryResourceStore, school: School
    ) -> None:
        created = client.post("/api/students", json=student_payload(school)).json()["data"]
        resp = client.put(f"/api/students/{created['id']}", json=created)
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["rollNumber"] == created["rollNumber"]

    def test_hook_order(self, store: InMemoryResourceStore) -> None:
        _seed_grades(store, 1)
        (grade,) = store.rows("grade")
        hooks = RecordingHooks()
        resp = _grade_app(store, hooks).put(f"/api/grades/{grade['id']}", json={"name": "Renamed"})
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Renamed"
        assert hooks.calls == ["before_update", "after_update"]

    def test_switching_current_academic_year(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        resp = client.post(
            "/api/academic-years",
            json={"name": "2025-2026", "startDate": "2025-08-01", "endDate": "2026-06-30", "isCurrent": True},
        )
        assert resp.status_code == 201, resp.text
        current = client.get("/api/academic-years", params={"isCurrent": "true"}).json()["data"]
        assert [y["name"] for y in current] == ["2025-2026"]


class TestDelete:
    def test_delete(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        resp = client.delete(f"/api/sections/{school.other_section_id}")
        assert resp.status_code == 204
        assert resp.content == b""
        assert client.get(f"/api/sections/{school.other_section_id}").status_code == 404

    def test_hook_order(self, store: InMemoryResourceStore) -> None:
        _seed_grades(store, 1)
        (grade,) = store.rows("grade")
        hooks = RecordingHooks()
        assert _grade_app(store, hooks).delete(f"/api/grades/{grade['id']}").status_code == 204
        assert hooks.calls == ["before_delete", "after_delete"]


class TestRouting:
    def test_read_only_resource_rejects_writes(self, client: TestClient) -> None:
        resp = client.post("/api/audit-logs", json={"action": "create"})
        assert resp.status_code == 405
        assert resp.json()["error"]["code"] == "METHOD_NOT_ALLOWED"
        assert client.delete("/api/audit-logs/x").status_code == 405

    def test_audit_log_lists_mutations(self, client: TestClient, school: School) -> None:
        created = client.post("/api/students", json=student_payload(school)).json()["data"]
        entries = client.get("/api/audit-logs", params={"entityId": created["id"]}).json()["data"]
        assert [e["action"] for e in entries] == ["create"]
        assert entries[0]["entity"] == "student"

    @pytest.mark.parametrize("segment", ["academic-years", "academicYears", "academicYear"])
    def test_segment_spellings(self, client: TestClient, school: School, segment: str) -> None:
        resp = client.get(f"/api/{segment}")
        assert resp.status_code == 200
        assert [y["name"] for y in resp.json()["data"]] == ["2024-2025"]

    def test_unknown_resource(self, client: TestClient) -> None:
        resp = client.get("/api/dragons")
        assert resp.status_code == 404
        assert resp.json()["error"] == {"message": "Resource not found", "code": "NOT_FOUND"}

    def test_unsupported_method_keeps_the_envelope(self, client: TestClient) -> None:
        resp = client.post("/api/students/abc", json={})
        assert resp.status_code == 405
        assert resp.json()["success"] is False
        assert resp.json()["error"]["code"] == "METHOD_NOT_ALLOWED"

    def test_parent_lists_children(self, client: TestClient, store: InMemoryResourceStore, school: School) -> None:
        parent = asyncio.run(store.create("parent", {"first_name": "Ravi", "last_name": "Verma"}))
        _seed_student(store, school, "R1", first_name="Asha", guardian={"connect": {"id": parent["id"]}})
        data = client.get(f"/api/parents/{parent['id']}").json()["data"]
        assert data["name"] == "Ravi Verma"
        assert data["students"] == [{"id": store.rows("student")[0]["id"], "name": "Asha R1", "grade": "Grade 5", "section": "A"}]
