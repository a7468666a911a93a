from fastapi import APIRouter, Depends, HTTPException, Path, status

from app.core.exceptions import ServiceError
from app.store.document_store import DocumentStore, get_document_store

from .schemas import (
    ClassListResponse,
    DecisionUpdate,
    ExamScoreUpdate,
    PreviewResponse,
    ResultUpdate,
    RosterResponse,
    SchoolContext,
    SelectClassRequest,
    StudentRecord,
    TransitionOutcome,
)
from .service import PromotionService
from .sessions import registry

router = APIRouter(prefix="/api/v1/schools/{school_id}/promotions", tags=["promotions"])


def get_school_context(school_id: str = Path(..., min_length=1)) -> SchoolContext:
    return SchoolContext(school_id=school_id)


def get_promotion_service(store: DocumentStore = Depends(get_document_store)) -> PromotionService:
    return PromotionService(store, registry)


@router.get("/classes", response_model=ClassListResponse)
async def list_classes(
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> ClassListResponse:
    """Classes in promotion order with live student counts. status=load_failed on read failure."""
    load_status, classes = await service.load_classes(ctx)
    return ClassListResponse(status=load_status, classes=classes)


@router.post("/sessions", response_model=RosterResponse, status_code=status.HTTP_201_CREATED)
async def select_class(
    payload: SelectClassRequest,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> RosterResponse:
    """Load the roster of a class and open a promotion session. Replaces any open session for that class."""
    try:
        session = await service.select_class(ctx, payload.class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return service.roster(session)


@router.get("/sessions/{session_id}", response_model=RosterResponse)
async def get_roster(
    session_id: str,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> RosterResponse:
    try:
        return service.roster(service.get_session(ctx, session_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_session(
    session_id: str,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> None:
    if not service.discard(ctx, session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Promotion session not found")


@router.put("/sessions/{session_id}/students/{student_id}/decision", response_model=StudentRecord)
async def set_decision(
    session_id: str,
    student_id: str,
    payload: DecisionUpdate,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> StudentRecord:
    try:
        return service.set_decision(ctx, session_id, student_id, payload.decision)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/sessions/{session_id}/decisions", response_model=RosterResponse)
async def set_all_decisions(
    session_id: str,
    payload: DecisionUpdate,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> RosterResponse:
    """Apply one decision to every student in the roster."""
    try:
        service.set_all_decisions(ctx, session_id, payload.decision)
        return service.roster(service.get_session(ctx, session_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/sessions/{session_id}/students/{student_id}/exam-score", response_model=StudentRecord)
async def set_exam_score(
    session_id: str,
    student_id: str,
    payload: ExamScoreUpdate,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> StudentRecord:
    """Numeric scores also set result (pass at or above the pass mark); other input leaves result unchanged."""
    try:
        return service.set_exam_score(ctx, session_id, student_id, payload.exam_score)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/sessions/{session_id}/students/{student_id}/result", response_model=StudentRecord)
async def set_result(
    session_id: str,
    student_id: str,
    payload: ResultUpdate,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> StudentRecord:
    try:
        return service.set_result(ctx, session_id, student_id, payload.result)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/sessions/{session_id}/preview", response_model=PreviewResponse)
async def preview_transition(
    session_id: str,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> PreviewResponse:
    """Resolved action per student and operation / chunk counts. Writes nothing."""
    try:
        return await service.preview(ctx, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/sessions/{session_id}/commit", response_model=TransitionOutcome)
async def commit_transition(
    session_id: str,
    ctx: SchoolContext = Depends(get_school_context),
    service: PromotionService = Depends(get_promotion_service),
) -> TransitionOutcome:
    """
    Purge attendance history, then move every student per their decision.
    Returns 502 with the outcome (committed vs. pending chunks) when a chunk fails;
    chunks committed before the failure stay applied.
    """
    try:
        outcome = await service.commit(ctx, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if outcome.error is not None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=outcome.model_dump(mode="json"),
        )
    return outcome
