"""
Promotion sessions: one DecisionStore per (school, class) selection, held in process
memory until it is committed or discarded. Also holds the per-class processing token
that rejects a second concurrent transition for the same class.
"""

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, Set, Tuple

from app.core.exceptions import PromotionInProgress, PromotionSessionNotFound

from .decisions import DecisionStore
from .schemas import SchoolContext


class PromotionSession:
    def __init__(self, school_id: str, class_id: str, decisions: DecisionStore) -> None:
        self.id = uuid.uuid4().hex
        self.school_id = school_id
        self.class_id = class_id
        self.decisions = decisions
        self.created_at = datetime.now(timezone.utc)


class PromotionSessionRegistry:
    def __init__(self) -> None:
        self._sessions: Dict[str, PromotionSession] = {}
        self._by_class: Dict[Tuple[str, str], str] = {}
        self._processing: Set[Tuple[str, str]] = set()

    def open(self, ctx: SchoolContext, class_id: str, decisions: DecisionStore) -> PromotionSession:
        """
        Register a new session under the requested class, whether or not its roster loaded.
        A previous session for the same class is replaced.
        """
        session = PromotionSession(ctx.school_id, class_id, decisions)
        key = (ctx.school_id, class_id)
        previous_id = self._by_class.pop(key, None)
        if previous_id:
            self._sessions.pop(previous_id, None)
        self._by_class[key] = session.id
        self._sessions[session.id] = session
        return session

    def get(self, ctx: SchoolContext, session_id: str) -> PromotionSession:
        session = self._sessions.get(session_id)
        if session is None or session.school_id != ctx.school_id:
            raise PromotionSessionNotFound(session_id)
        return session

    def discard(self, ctx: SchoolContext, session_id: str) -> bool:
        session = self._sessions.get(session_id)
        if session is None or session.school_id != ctx.school_id:
            return False
        del self._sessions[session_id]
        key = (ctx.school_id, session.class_id)
        if self._by_class.get(key) == session_id:
            del self._by_class[key]
        return True

    def is_processing(self, ctx: SchoolContext, class_id: str) -> bool:
        return (ctx.school_id, class_id) in self._processing

    @contextmanager
    def processing(self, ctx: SchoolContext, class_id: str) -> Iterator[None]:
        """Hold the processing token for a class; a second holder is rejected, not queued."""
        key = (ctx.school_id, class_id)
        if key in self._processing:
            raise PromotionInProgress(class_id)
        self._processing.add(key)
        try:
            yield
        finally:
            self._processing.discard(key)


registry = PromotionSessionRegistry()
