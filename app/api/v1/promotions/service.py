"""
Annual transition engine for one class.

Run states: idle -> purging_history -> moving_students -> done, with failed reachable
from either working state. There is no rolled-back state: a failure leaves whatever
prefix of chunks already committed.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Union

from fastapi import status

from app.core.config import settings
from app.core.enums import EngineState, ExamResult, RosterStatus, TransitionDecision
from app.core.exceptions import DocumentStoreError, PromotionInProgress, ServiceError
from app.store import paths
from app.store.document_store import DocumentStore

from .batching import chunk_count, commit_chunked
from .decisions import DecisionStore
from .planner import build_transition_plan, destination_of
from .purge import purge_attendance_history
from .roster import RosterLoader
from .schemas import (
    ClassNode,
    CommitReportResponse,
    DemoteOp,
    LeaveOp,
    PreviewResponse,
    PromoteOp,
    RetainOp,
    RosterResponse,
    SchoolContext,
    SkippedOp,
    StudentActionPreview,
    StudentRecord,
    TransitionAction,
    TransitionOutcome,
)
from .sessions import PromotionSession, PromotionSessionRegistry

log = logging.getLogger(__name__)

_ALLOWED: Dict[EngineState, Tuple[EngineState, ...]] = {
    EngineState.IDLE: (EngineState.PURGING_HISTORY,),
    EngineState.PURGING_HISTORY: (EngineState.MOVING_STUDENTS, EngineState.FAILED),
    EngineState.MOVING_STUDENTS: (EngineState.DONE, EngineState.FAILED),
    EngineState.DONE: (),
    EngineState.FAILED: (),
}


class TransitionRun:
    """State tracker for one invocation."""

    def __init__(self, class_id: str) -> None:
        self.class_id = class_id
        self.state = EngineState.IDLE
        self.states: List[EngineState] = [EngineState.IDLE]

    def advance(self, new_state: EngineState) -> None:
        if new_state not in _ALLOWED[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {new_state.value}")
        log.info("Class %s: %s -> %s", self.class_id, self.state.value, new_state.value)
        self.state = new_state
        self.states.append(new_state)


def _tally(outcome: TransitionOutcome, actions: List[TransitionAction]) -> None:
    for action in actions:
        if isinstance(action, PromoteOp):
            if action.graduate:
                outcome.graduated += 1
            else:
                outcome.promoted += 1
        elif isinstance(action, DemoteOp):
            outcome.demoted += 1
        elif isinstance(action, RetainOp):
            outcome.retained += 1
        elif isinstance(action, LeaveOp):
            outcome.left += 1
        elif isinstance(action, SkippedOp):
            outcome.skipped += 1


class PromotionService:
    def __init__(
        self,
        store: DocumentStore,
        registry: PromotionSessionRegistry,
        chunk_size: Optional[int] = None,
        pass_mark: Optional[float] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.loader = RosterLoader(store)
        self.chunk_size = chunk_size or store.max_batch_size
        self.pass_mark = settings.pass_mark if pass_mark is None else pass_mark

    # ----- Roster -----
    async def load_classes(self, ctx: SchoolContext) -> Tuple[RosterStatus, List[ClassNode]]:
        return await self.loader.load_classes(ctx)

    async def select_class(self, ctx: SchoolContext, class_id: str) -> PromotionSession:
        if self.registry.is_processing(ctx, class_id):
            raise PromotionInProgress(class_id)
        load_status, school_class, students = await self.loader.select_class(ctx, class_id)
        decisions = DecisionStore(school_class, students, status=load_status, pass_mark=self.pass_mark)
        return self.registry.open(ctx, class_id, decisions)

    def get_session(self, ctx: SchoolContext, session_id: str) -> PromotionSession:
        return self.registry.get(ctx, session_id)

    def roster(self, session: PromotionSession) -> RosterResponse:
        """Pre-commit snapshot (class, students with decisions) for reporting consumers."""
        return RosterResponse(
            session_id=session.id,
            status=session.decisions.status,
            school_class=session.decisions.school_class,
            students=session.decisions.students,
        )

    def discard(self, ctx: SchoolContext, session_id: str) -> bool:
        return self.registry.discard(ctx, session_id)

    # ----- Decision edits -----
    def set_decision(
        self, ctx: SchoolContext, session_id: str, student_id: str, decision: TransitionDecision
    ) -> StudentRecord:
        return self.get_session(ctx, session_id).decisions.set_decision(student_id, decision)

    def set_all_decisions(self, ctx: SchoolContext, session_id: str, decision: TransitionDecision) -> None:
        self.get_session(ctx, session_id).decisions.set_all_decisions(decision)

    def set_exam_score(
        self, ctx: SchoolContext, session_id: str, student_id: str, score: Union[float, str, None]
    ) -> StudentRecord:
        return self.get_session(ctx, session_id).decisions.set_exam_score(student_id, score)

    def set_result(self, ctx: SchoolContext, session_id: str, student_id: str, result: ExamResult) -> StudentRecord:
        return self.get_session(ctx, session_id).decisions.set_result(student_id, result)

    # ----- Preview / commit -----
    def _committable(self, session: PromotionSession) -> str:
        if session.decisions.status != RosterStatus.LOADED or session.decisions.school_class is None:
            raise ServiceError("Roster failed to load; reselect the class", status.HTTP_409_CONFLICT)
        return session.class_id

    async def preview(self, ctx: SchoolContext, session_id: str) -> PreviewResponse:
        session = self.get_session(ctx, session_id)
        class_id = self._committable(session)
        plan = build_transition_plan(ctx, class_id, session.decisions.students)
        purge_total = await self.store.count(paths.attendance_history_collection(ctx.school_id))
        students = session.decisions.students
        return PreviewResponse(
            class_id=class_id,
            chunk_size=self.chunk_size,
            purge_operation_count=purge_total,
            purge_chunk_count=chunk_count(purge_total, self.chunk_size),
            move_operation_count=len(plan.operations),
            move_chunk_count=chunk_count(len(plan.operations), self.chunk_size),
            actions=[
                StudentActionPreview(
                    student_id=student.id,
                    name=student.name,
                    decision=student.decision,
                    action=action,
                    destination=destination_of(action),
                    operation_count=count,
                )
                for student, action, count in zip(students, plan.actions, plan.operation_counts)
            ],
        )

    async def commit(self, ctx: SchoolContext, session_id: str) -> TransitionOutcome:
        """
        Purge attendance history, then plan and commit the move operations.
        The roster is the snapshot taken at selection time; last writer wins.
        A successful run discards the session and reloads the class list; a failed
        run keeps the session so the user can inspect it.
        """
        session = self.get_session(ctx, session_id)
        class_id = self._committable(session)

        with self.registry.processing(ctx, class_id):
            run = TransitionRun(class_id)
            outcome = TransitionOutcome(class_id=class_id, state=run.state)

            run.advance(EngineState.PURGING_HISTORY)
            try:
                purge_report = await purge_attendance_history(self.store, ctx, self.chunk_size)
            except DocumentStoreError as e:
                log.error("Listing attendance history failed for school %s: %s", ctx.school_id, e.message)
                run.advance(EngineState.FAILED)
                return self._finish(outcome, run, error=e.message)
            outcome.purge = CommitReportResponse.from_report(purge_report)
            if not purge_report.succeeded:
                run.advance(EngineState.FAILED)
                return self._finish(outcome, run, error=purge_report.error)

            # Move ops are generated only after the purge has fully committed.
            run.advance(EngineState.MOVING_STUDENTS)
            plan = build_transition_plan(ctx, class_id, session.decisions.students, now=datetime.now(timezone.utc))
            _tally(outcome, plan.actions)
            move_report = await commit_chunked(self.store, plan.operations, self.chunk_size)
            outcome.moves = CommitReportResponse.from_report(move_report)
            if not move_report.succeeded:
                run.advance(EngineState.FAILED)
                return self._finish(outcome, run, error=move_report.error)

            run.advance(EngineState.DONE)

        self.registry.discard(ctx, session_id)
        load_status, classes = await self.loader.load_classes(ctx)
        if load_status == RosterStatus.LOADED:
            outcome.classes = classes
        return self._finish(outcome, run)

    @staticmethod
    def _finish(outcome: TransitionOutcome, run: TransitionRun, error: Optional[str] = None) -> TransitionOutcome:
        outcome.state = run.state
        outcome.states = list(run.states)
        outcome.error = error
        return outcome
