"""
Roster loading: the ordered class list with live headcounts, and the roster of one
class with each student's promotion / demotion destination resolved.

Read failures never raise to the caller; they come back as an empty result with
status=load_failed so the user can retry by reselecting.
"""

import logging
from typing import List, Optional, Tuple

from fastapi import status

from app.core.enums import RosterStatus
from app.core.exceptions import DocumentStoreError, ServiceError
from app.store import paths
from app.store.document_store import DocumentSnapshot, DocumentStore

from .ordering import order_key, sort_by_order
from .schemas import GRADUATE, GRADUATE_NAME, ClassNode, SchoolContext, StudentRecord

log = logging.getLogger(__name__)


def _neighbours(classes: List[ClassNode], class_id: str) -> Tuple[Optional[ClassNode], Optional[ClassNode]]:
    """(previous, next) around class_id in the sorted list."""
    index = next(i for i, c in enumerate(classes) if c.id == class_id)
    previous = classes[index - 1] if index > 0 else None
    following = classes[index + 1] if index + 1 < len(classes) else None
    return previous, following


def _to_student(
    snap: DocumentSnapshot,
    class_id: str,
    previous: Optional[ClassNode],
    following: Optional[ClassNode],
) -> StudentRecord:
    roll_no = snap.data.get("rollNo")
    return StudentRecord(
        id=snap.id,
        roll_no=str(roll_no) if roll_no not in (None, "") else None,
        name=snap.data.get("name") or "",
        class_id=class_id,
        data=snap.data,
        next_class_id=following.id if following else GRADUATE,
        next_class_name=following.name if following else GRADUATE_NAME,
        previous_class_id=previous.id if previous else None,
        previous_class_name=previous.name if previous else None,
    )


class RosterLoader:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def fetch_classes(self, ctx: SchoolContext) -> List[ClassNode]:
        """Ordered class list with live counts. Raises DocumentStoreError on read failure."""
        snaps = await self.store.list(paths.classes_collection(ctx.school_id))
        classes = []
        for snap in snaps:
            name = snap.data.get("name") or ""
            count = await self.store.count(paths.roster_collection(ctx.school_id, snap.id))
            classes.append(ClassNode(id=snap.id, name=name, order_key=order_key(name), student_count=count))
        return sort_by_order(classes)

    async def load_classes(self, ctx: SchoolContext) -> Tuple[RosterStatus, List[ClassNode]]:
        try:
            return RosterStatus.LOADED, await self.fetch_classes(ctx)
        except DocumentStoreError:
            log.exception("Error fetching classes for school %s", ctx.school_id)
            return RosterStatus.LOAD_FAILED, []

    async def select_class(
        self,
        ctx: SchoolContext,
        class_id: str,
    ) -> Tuple[RosterStatus, Optional[ClassNode], List[StudentRecord]]:
        """
        Load every student filed under class_id and resolve next / previous class.
        The last class promotes to the graduate sentinel; the first has no previous class.
        Every record starts at decision=promote, exam_score="", result=pass.
        """
        try:
            classes = await self.fetch_classes(ctx)
        except DocumentStoreError:
            log.exception("Error fetching classes for school %s", ctx.school_id)
            return RosterStatus.LOAD_FAILED, None, []

        school_class = next((c for c in classes if c.id == class_id), None)
        if school_class is None:
            raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)

        previous, following = _neighbours(classes, class_id)
        try:
            snaps = await self.store.list(paths.roster_collection(ctx.school_id, class_id))
        except DocumentStoreError:
            log.exception("Error fetching students for class %s", class_id)
            return RosterStatus.LOAD_FAILED, school_class, []

        students = [_to_student(s, class_id, previous, following) for s in snaps]
        return RosterStatus.LOADED, school_class, students
