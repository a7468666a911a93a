"""Roster loading against a seeded school."""

from typing import List

import pytest

from app.api.v1.promotions.roster import RosterLoader
from app.api.v1.promotions.schemas import GRADUATE, SchoolContext
from app.api.v1.promotions.service import PromotionService
from app.core.enums import ExamResult, RosterStatus, TransitionDecision
from app.core.exceptions import DocumentStoreError, PromotionSessionNotFound, ServiceError
from app.store.document_store import DocumentSnapshot

from .conftest import FlakyDocumentStore, seed_school


class ListFailingStore(FlakyDocumentStore):
    def __init__(self, *args, failing_suffix: str, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.failing_suffix = failing_suffix

    async def list(self, collection: str) -> List[DocumentSnapshot]:
        if collection.endswith(self.failing_suffix):
            raise DocumentStoreError("simulated read failure")
        return await super().list(collection)


async def test_load_classes_sorted_with_live_counts(store, ctx) -> None:
    # Inserted out of order on purpose
    await seed_school(
        store,
        class_names=["Class 2", "Prep", "Class 10", "Nursery", "Class 1"],
        rosters={"Class 1": ["s01", "s02"], "Prep": ["s03"]},
    )
    load_status, classes = await RosterLoader(store).load_classes(ctx)
    assert load_status == RosterStatus.LOADED
    assert [c.name for c in classes] == ["Nursery", "Prep", "Class 1", "Class 2", "Class 10"]
    assert [c.student_count for c in classes] == [0, 1, 2, 0, 0]
    assert [c.order_key for c in classes] == [-2, -1, 1, 2, 10]


async def test_select_middle_class_resolves_both_neighbours(store, ctx) -> None:
    await seed_school(store, rosters={"Class 5": ["s01", "s02"]})
    load_status, school_class, students = await RosterLoader(store).select_class(ctx, "class-5")

    assert load_status == RosterStatus.LOADED
    assert school_class.name == "Class 5"
    assert [s.id for s in students] == ["s01", "s02"]
    for s in students:
        assert (s.next_class_id, s.next_class_name) == ("class-6", "Class 6")
        assert (s.previous_class_id, s.previous_class_name) == ("class-4", "Class 4")
        assert s.decision == TransitionDecision.PROMOTE
        assert s.exam_score == ""
        assert s.result == ExamResult.PASS
        assert s.class_id == "class-5"
        assert s.data["homework"] == 75


async def test_last_class_graduates_and_first_has_no_previous(store, ctx) -> None:
    await seed_school(store, rosters={"Class 10": ["top"], "Nursery": ["tiny"]})
    loader = RosterLoader(store)

    _, _, top = await loader.select_class(ctx, "class-10")
    assert top[0].next_class_id == GRADUATE
    assert top[0].next_class_name == "Graduated"

    _, _, tiny = await loader.select_class(ctx, "nursery")
    assert tiny[0].previous_class_id is None
    assert tiny[0].next_class_id == "prep"


async def test_unknown_class_raises_not_found(store, ctx) -> None:
    await seed_school(store)
    with pytest.raises(ServiceError) as exc:
        await RosterLoader(store).select_class(ctx, "class-99")
    assert exc.value.status_code == 404


async def test_roster_read_failure_returns_empty_load_failed(session_factory, ctx) -> None:
    store = ListFailingStore(session_factory, failing_suffix="/class-5/students")
    await seed_school(store, rosters={"Class 5": ["s01"]})
    load_status, school_class, students = await RosterLoader(store).select_class(ctx, "class-5")
    assert load_status == RosterStatus.LOAD_FAILED
    assert school_class.id == "class-5"
    assert students == []


async def test_class_list_read_failure_returns_empty_load_failed(session_factory, ctx) -> None:
    store = ListFailingStore(session_factory, failing_suffix="/classes")
    load_status, classes = await RosterLoader(store).load_classes(ctx)
    assert load_status == RosterStatus.LOAD_FAILED
    assert classes == []


async def test_schools_are_isolated(store) -> None:
    await seed_school(store, school_id="other", rosters={"Class 5": ["x1"]})
    load_status, classes = await RosterLoader(store).load_classes(SchoolContext(school_id="school-1"))
    assert load_status == RosterStatus.LOADED
    assert classes == []


async def test_failed_class_list_selection_replaces_previous_session(session_factory, ctx, registry) -> None:
    store = ListFailingStore(session_factory, failing_suffix="/classes")
    service = PromotionService(store, registry, chunk_size=400, pass_mark=33)
    first = await service.select_class(ctx, "class-5")
    second = await service.select_class(ctx, "class-5")
    assert first.decisions.status == second.decisions.status == RosterStatus.LOAD_FAILED
    assert second.class_id == "class-5"
    with pytest.raises(PromotionSessionNotFound):
        service.get_session(ctx, first.id)
