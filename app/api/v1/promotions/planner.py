"""
Turns a roster with decisions into typed per-student actions and the ordered list of
write operations that carries them out.

Per student:
  promote, last class  -> set alumni/{id} (full record, reset, graduatedAt), delete roster and master copies
  promote              -> set next class roster/{id} (reset, promotedAt), delete roster copy, merge into master copy
  demote               -> set previous class roster/{id} (reset, demotedAt), delete roster copy, merge into master copy
  demote, first class  -> skipped, nothing written
  leave                -> delete roster copy and master registry copy, no reset written
  retain               -> update roster copy in place (reset, retained=true, retainedAt)
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.enums import TransitionDecision, WriteKind
from app.store import paths
from app.store.document_store import BatchOperation

from .schemas import (
    GRADUATE,
    GRADUATE_NAME,
    DemoteOp,
    LeaveOp,
    PromoteOp,
    ResetSnapshot,
    RetainOp,
    SchoolContext,
    SkippedOp,
    StudentRecord,
    TransitionAction,
    TransitionPlan,
)


def resolve_action(student: StudentRecord) -> TransitionAction:
    decision = student.decision
    if decision == TransitionDecision.PROMOTE:
        if student.next_class_id == GRADUATE:
            return PromoteOp(student_id=student.id, graduate=True)
        return PromoteOp(
            student_id=student.id,
            to_class_id=student.next_class_id,
            to_class_name=student.next_class_name,
        )
    if decision == TransitionDecision.DEMOTE:
        if not student.previous_class_id:
            return SkippedOp(student_id=student.id, reason="No previous class to demote to")
        return DemoteOp(
            student_id=student.id,
            to_class_id=student.previous_class_id,
            to_class_name=student.previous_class_name,
        )
    if decision == TransitionDecision.LEAVE:
        return LeaveOp(student_id=student.id)
    return RetainOp(student_id=student.id)


# Per-year transition fields that must not follow a record into a new class.
_STALE_FIELDS = ("retained", "retainedAt")


def _transition_fields(student: StudentRecord, reset: ResetSnapshot) -> Dict[str, Any]:
    fields = reset.as_fields()
    fields["examScore"] = student.exam_score
    fields["result"] = student.result.value
    return fields


def _relocated(
    student: StudentRecord,
    reset: ResetSnapshot,
    from_class_id: str,
    to_class_id: str,
    to_class_name: Optional[str],
    stamp_field: str,
    now: datetime,
) -> Dict[str, Any]:
    record = {k: v for k, v in student.data.items() if k not in _STALE_FIELDS}
    record.update(_transition_fields(student, reset))
    record["id"] = student.id
    record["classId"] = to_class_id
    if to_class_name is not None:
        record["className"] = to_class_name
    record[stamp_field] = now
    record["previousClassId"] = from_class_id
    return record


def _master_sync(record: Dict[str, Any]) -> Dict[str, Any]:
    """Merge payload bringing the master registry copy in line with the relocated roster copy."""
    fields = {k: v for k, v in record.items() if k != "id"}
    fields["retained"] = False
    fields["retainedAt"] = None
    return fields


def _operations_for(
    ctx: SchoolContext,
    class_id: str,
    student: StudentRecord,
    action: TransitionAction,
    reset: ResetSnapshot,
    now: datetime,
) -> List[BatchOperation]:
    roster = paths.roster_collection(ctx.school_id, class_id)
    source = paths.doc_path(roster, student.id)
    master = paths.doc_path(paths.master_registry_collection(ctx.school_id), student.id)
    delete_source = BatchOperation(kind=WriteKind.DELETE, path=source)
    delete_master = BatchOperation(kind=WriteKind.DELETE, path=master)

    if isinstance(action, PromoteOp) and action.graduate:
        record = _relocated(student, reset, class_id, GRADUATE, GRADUATE_NAME, "graduatedAt", now)
        target = paths.doc_path(paths.alumni_collection(ctx.school_id), student.id)
        # The master registry holds active students only.
        return [BatchOperation(kind=WriteKind.SET, path=target, payload=record), delete_source, delete_master]

    if isinstance(action, (PromoteOp, DemoteOp)):
        stamp = "promotedAt" if isinstance(action, PromoteOp) else "demotedAt"
        record = _relocated(student, reset, class_id, action.to_class_id, action.to_class_name, stamp, now)
        target = paths.doc_path(paths.roster_collection(ctx.school_id, action.to_class_id), student.id)
        return [
            BatchOperation(kind=WriteKind.SET, path=target, payload=record),
            delete_source,
            BatchOperation(kind=WriteKind.SET, path=master, payload=_master_sync(record), merge=True),
        ]

    if isinstance(action, LeaveOp):
        return [delete_source, delete_master]

    if isinstance(action, RetainOp):
        fields = _transition_fields(student, reset)
        fields.update({"retained": True, "retainedAt": now})
        return [BatchOperation(kind=WriteKind.UPDATE, path=source, payload=fields)]

    return []


def build_transition_plan(
    ctx: SchoolContext,
    class_id: str,
    students: List[StudentRecord],
    now: Optional[datetime] = None,
) -> TransitionPlan:
    """Actions and move operations in roster order; the same reset snapshot is applied on every branch."""
    now = now or datetime.now(timezone.utc)
    reset = ResetSnapshot(updated_at=now)
    actions: List[TransitionAction] = []
    operations: List[BatchOperation] = []
    counts: List[int] = []
    for student in students:
        action = resolve_action(student)
        student_ops = _operations_for(ctx, class_id, student, action, reset, now)
        actions.append(action)
        counts.append(len(student_ops))
        operations.extend(student_ops)
    return TransitionPlan(
        class_id=class_id,
        actions=actions,
        operations=operations,
        operation_counts=counts,
        reset=reset,
    )


def destination_of(action: TransitionAction) -> str:
    if isinstance(action, PromoteOp):
        return "alumni" if action.graduate else "next_class"
    if isinstance(action, DemoteOp):
        return "previous_class"
    if isinstance(action, LeaveOp):
        return "removed"
    if isinstance(action, RetainOp):
        return "in_place"
    return "unchanged"
