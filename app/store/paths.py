"""
Collection layout of a school's documents.

schools/{school}/classes                          class documents
schools/{school}/classes/{class}/students         per-class roster
schools/{school}/students                         master registry (all active students)
schools/{school}/alumni                           students who graduated out of the top class
schools/{school}/attendance_history               attendance history records
"""

from typing import Tuple


def split_path(path: str) -> Tuple[str, str]:
    """Return (collection, doc_id) for a document path. Document paths have an even segment count."""
    segments = [s for s in path.strip("/").split("/") if s]
    if len(segments) < 2 or len(segments) % 2:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(segments[:-1]), segments[-1]


def doc_path(collection: str, doc_id: str) -> str:
    return f"{collection.strip('/')}/{doc_id}"


def school_root(school_id: str) -> str:
    return f"schools/{school_id}"


def classes_collection(school_id: str) -> str:
    return f"{school_root(school_id)}/classes"


def roster_collection(school_id: str, class_id: str) -> str:
    return f"{classes_collection(school_id)}/{class_id}/students"


def master_registry_collection(school_id: str) -> str:
    return f"{school_root(school_id)}/students"


def alumni_collection(school_id: str) -> str:
    return f"{school_root(school_id)}/alumni"


def attendance_history_collection(school_id: str) -> str:
    return f"{school_root(school_id)}/attendance_history"
