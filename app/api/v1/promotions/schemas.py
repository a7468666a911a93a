from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import EngineState, ExamResult, RosterStatus, TransitionDecision
from app.store.document_store import BatchOperation

GRADUATE = "graduate"
GRADUATE_NAME = "Graduated"


class SchoolContext(BaseModel):
    """Explicit school identity for one invocation. Never looked up from ambient state."""

    model_config = ConfigDict(frozen=True)

    school_id: str = Field(..., min_length=1)


# ----- Roster -----
class ClassNode(BaseModel):
    id: str
    name: str
    order_key: int
    student_count: int = 0


class ClassListResponse(BaseModel):
    status: RosterStatus
    classes: List[ClassNode] = Field(default_factory=list)


class StudentRecord(BaseModel):
    """Roster entry: persisted document fields in `data`, session-only transition inputs alongside."""

    id: str
    roll_no: Optional[str] = None
    name: str = ""
    class_id: str
    data: Dict[str, Any] = Field(default_factory=dict, description="Persisted document fields as loaded")

    exam_score: Union[float, str, None] = ""
    result: ExamResult = ExamResult.PASS
    decision: TransitionDecision = TransitionDecision.PROMOTE

    next_class_id: str = GRADUATE
    next_class_name: str = GRADUATE_NAME
    previous_class_id: Optional[str] = None
    previous_class_name: Optional[str] = None


class RosterResponse(BaseModel):
    session_id: Optional[str] = None
    status: RosterStatus
    school_class: Optional[ClassNode] = None
    students: List[StudentRecord] = Field(default_factory=list)


# ----- Decision edits -----
class SelectClassRequest(BaseModel):
    class_id: str = Field(..., min_length=1)


class DecisionUpdate(BaseModel):
    decision: TransitionDecision


class ExamScoreUpdate(BaseModel):
    exam_score: Union[float, str, None] = Field("", description="Numeric score, or any text (stored as given)")


class ResultUpdate(BaseModel):
    result: ExamResult


# ----- Transition plan -----
class ResetSnapshot(BaseModel):
    """Year-scoped fields cleared on every relocated or retained record."""

    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    academic_scores: List[Any] = Field(default_factory=list, alias="academicScores")
    homework: float = 0
    attendance: Dict[str, Any] = Field(default_factory=lambda: {"percentage": 0})
    wellness: Dict[str, Any] = Field(
        default_factory=lambda: {"behavior": None, "health": None, "hygiene": None}
    )
    updated_at: datetime = Field(..., alias="updatedAt")

    def as_fields(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class PromoteOp(BaseModel):
    kind: Literal["promote"] = "promote"
    student_id: str
    to_class_id: Optional[str] = None
    to_class_name: Optional[str] = None
    graduate: bool = False


class DemoteOp(BaseModel):
    kind: Literal["demote"] = "demote"
    student_id: str
    to_class_id: str
    to_class_name: Optional[str] = None


class RetainOp(BaseModel):
    kind: Literal["retain"] = "retain"
    student_id: str


class LeaveOp(BaseModel):
    kind: Literal["leave"] = "leave"
    student_id: str


class SkippedOp(BaseModel):
    """No valid destination (demote from the first class); the record is left untouched."""

    kind: Literal["skipped"] = "skipped"
    student_id: str
    reason: str


TransitionAction = Annotated[
    Union[PromoteOp, DemoteOp, RetainOp, LeaveOp, SkippedOp],
    Field(discriminator="kind"),
]


class TransitionPlan(BaseModel):
    class_id: str
    actions: List[TransitionAction] = Field(default_factory=list)
    operations: List[BatchOperation] = Field(default_factory=list)
    operation_counts: List[int] = Field(default_factory=list)
    reset: ResetSnapshot


class StudentActionPreview(BaseModel):
    student_id: str
    name: str
    decision: TransitionDecision
    action: TransitionAction
    destination: str = Field(..., description="next_class, previous_class, alumni, removed, in_place or unchanged")
    operation_count: int = 0


class PreviewResponse(BaseModel):
    class_id: str
    chunk_size: int
    purge_operation_count: int
    purge_chunk_count: int
    move_operation_count: int
    move_chunk_count: int
    actions: List[StudentActionPreview] = Field(default_factory=list)


# ----- Commit -----
class ChunkResult(BaseModel):
    index: int
    size: int
    committed: bool


class CommitReport(BaseModel):
    total_operations: int
    chunk_size: int
    chunks: List[ChunkResult] = Field(default_factory=list)
    failed_chunk: Optional[int] = None
    error: Optional[str] = None

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    @property
    def committed_chunks(self) -> List[int]:
        return [c.index for c in self.chunks if c.committed]

    @property
    def pending_chunks(self) -> List[int]:
        return [c.index for c in self.chunks if not c.committed]

    @property
    def succeeded(self) -> bool:
        return self.failed_chunk is None and self.error is None


class CommitReportResponse(BaseModel):
    total_operations: int
    chunk_size: int
    chunk_count: int
    committed_chunks: List[int]
    pending_chunks: List[int]
    failed_chunk: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_report(cls, report: CommitReport) -> "CommitReportResponse":
        return cls(
            total_operations=report.total_operations,
            chunk_size=report.chunk_size,
            chunk_count=report.chunk_count,
            committed_chunks=report.committed_chunks,
            pending_chunks=report.pending_chunks,
            failed_chunk=report.failed_chunk,
            error=report.error,
        )


class TransitionOutcome(BaseModel):
    class_id: str
    state: EngineState
    states: List[EngineState] = Field(default_factory=list, description="Every state the run passed through")
    purge: Optional[CommitReportResponse] = None
    moves: Optional[CommitReportResponse] = None
    promoted: int = 0
    graduated: int = 0
    demoted: int = 0
    retained: int = 0
    left: int = 0
    skipped: int = 0
    error: Optional[str] = None
    classes: List[ClassNode] = Field(default_factory=list, description="Reloaded class list after a successful run")
