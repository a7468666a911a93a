"""In-memory transition inputs for one loaded roster. No I/O."""

import math
from typing import Dict, List, Optional, Union

from app.core.config import settings
from app.core.enums import ExamResult, RosterStatus, TransitionDecision
from app.core.exceptions import StudentNotFound

from .schemas import ClassNode, StudentRecord


def parse_score(value: Union[float, str, None]) -> Optional[float]:
    """Numeric value of an exam score, or None when it does not parse to a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


class DecisionStore:
    """Per-student decision, exam score and pass/fail result for the selected class."""

    def __init__(
        self,
        school_class: Optional[ClassNode],
        students: List[StudentRecord],
        status: RosterStatus = RosterStatus.LOADED,
        pass_mark: Optional[float] = None,
    ) -> None:
        self.school_class = school_class
        self.status = status
        self.pass_mark = settings.pass_mark if pass_mark is None else pass_mark
        self._students: Dict[str, StudentRecord] = {s.id: s for s in students}

    @property
    def students(self) -> List[StudentRecord]:
        return list(self._students.values())

    def get(self, student_id: str) -> StudentRecord:
        try:
            return self._students[student_id]
        except KeyError:
            raise StudentNotFound(student_id)

    def set_decision(self, student_id: str, decision: TransitionDecision) -> StudentRecord:
        student = self.get(student_id)
        student.decision = TransitionDecision(decision)
        return student

    def set_all_decisions(self, decision: TransitionDecision) -> None:
        """Overwrite the decision of every student in the roster."""
        decision = TransitionDecision(decision)
        for student in self._students.values():
            student.decision = decision

    def set_exam_score(self, student_id: str, score: Union[float, str, None]) -> StudentRecord:
        """Store the score as given; a numeric score also re-derives result against the pass mark."""
        student = self.get(student_id)
        student.exam_score = score
        number = parse_score(score)
        if number is not None:
            student.result = ExamResult.PASS if number >= self.pass_mark else ExamResult.FAIL
        return student

    def set_result(self, student_id: str, result: ExamResult) -> StudentRecord:
        student = self.get(student_id)
        student.result = ExamResult(result)
        return student
