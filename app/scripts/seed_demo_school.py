"""
Seed a demo school into the document store.

Creates the documents table, then writes classes Nursery, Prep, Class 1..10, a few
students per class (roster copy + master registry copy) and some attendance history.
Usage: python -m app.scripts.seed_demo_school [school_id] [students_per_class]
"""

import asyncio
import sys
from datetime import date, timedelta
from typing import List, Tuple

from app.core.enums import WriteKind
from app.db.session import AsyncSessionLocal, create_all
from app.store import paths
from app.store.document_store import BatchOperation, DocumentStore

CLASS_NAMES: List[str] = ["Nursery", "Prep"] + [f"Class {n}" for n in range(1, 11)]
FIRST_NAMES = ["Aisha", "Bilal", "Chen", "Dana", "Emeka", "Farah", "Gita", "Hamza", "Ines", "Jonah"]


def _class_id(name: str) -> str:
    return name.lower().replace(" ", "-")


def build_seed_ops(school_id: str, students_per_class: int) -> Tuple[List[BatchOperation], int]:
    ops: List[BatchOperation] = []
    student_total = 0
    for name in CLASS_NAMES:
        class_id = _class_id(name)
        ops.append(
            BatchOperation(
                kind=WriteKind.SET,
                path=paths.doc_path(paths.classes_collection(school_id), class_id),
                payload={"name": name, "students": students_per_class},
            )
        )
        for i in range(students_per_class):
            student_id = f"{class_id}-s{i + 1:03d}"
            record = {
                "id": student_id,
                "name": f"{FIRST_NAMES[i % len(FIRST_NAMES)]} {class_id.upper()}-{i + 1}",
                "rollNo": str(i + 1),
                "classId": class_id,
                "className": name,
                "status": "present",
                "academicScores": [{"subject": "Maths", "score": 70 + i % 30}],
                "homework": 80,
                "attendance": {"percentage": 92},
                "wellness": {"behavior": "good", "health": "good", "hygiene": "good"},
            }
            ops.append(
                BatchOperation(
                    kind=WriteKind.SET,
                    path=paths.doc_path(paths.roster_collection(school_id, class_id), student_id),
                    payload=record,
                )
            )
            ops.append(
                BatchOperation(
                    kind=WriteKind.SET,
                    path=paths.doc_path(paths.master_registry_collection(school_id), student_id),
                    payload=record,
                )
            )
            student_total += 1

    start = date.today() - timedelta(days=30)
    for day in range(30):
        day_date = start + timedelta(days=day)
        ops.append(
            BatchOperation(
                kind=WriteKind.SET,
                path=paths.doc_path(paths.attendance_history_collection(school_id), day_date.isoformat()),
                payload={"date": day_date.isoformat(), "present": students_per_class * len(CLASS_NAMES)},
            )
        )
    return ops, student_total


async def seed_demo_school(school_id: str, students_per_class: int) -> None:
    await create_all()
    store = DocumentStore(AsyncSessionLocal)
    ops, student_total = build_seed_ops(school_id, students_per_class)
    for start in range(0, len(ops), store.max_batch_size):
        batch = store.batch()
        for op in ops[start:start + store.max_batch_size]:
            batch.add(op)
        await batch.commit()
    print(f"Seeded school {school_id}: {len(CLASS_NAMES)} classes, {student_total} students.")


def main() -> None:
    school_id = sys.argv[1] if len(sys.argv) > 1 else "demo-school"
    students_per_class = int(sys.argv[2]) if len(sys.argv) > 2 else 5
    asyncio.run(seed_demo_school(school_id, students_per_class))


if __name__ == "__main__":
    main()
