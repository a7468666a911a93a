from enum import Enum


class TransitionDecision(str, Enum):
    PROMOTE = "promote"
    RETAIN = "retain"
    DEMOTE = "demote"
    LEAVE = "leave"


class ExamResult(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class RosterStatus(str, Enum):
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


class WriteKind(str, Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


class EngineState(str, Enum):
    IDLE = "idle"
    PURGING_HISTORY = "purging_history"
    MOVING_STUDENTS = "moving_students"
    DONE = "done"
    FAILED = "failed"
