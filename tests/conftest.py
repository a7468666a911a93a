import os
from typing import AsyncGenerator, Dict, Iterable, List, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.promotions.router import get_promotion_service
from app.api.v1.promotions.schemas import SchoolContext
from app.api.v1.promotions.service import PromotionService
from app.api.v1.promotions.sessions import PromotionSessionRegistry
from app.core.exceptions import DocumentStoreError
from app.db.session import Base
from app.main import create_app
from app.store import paths
from app.store.document_store import BatchOperation, DocumentStore

# Importing the model registers the documents table on Base.metadata
from app.core.models import Document  # noqa: F401


TEST_DATABASE_URL = "sqlite+aiosqlite://"
SCHOOL_ID = "school-1"

CLASS_NAMES: List[str] = ["Nursery", "Prep"] + [f"Class {n}" for n in range(1, 11)]


def class_id_for(name: str) -> str:
    return name.lower().replace(" ", "-")


class FlakyDocumentStore(DocumentStore):
    """Fails the fail_on-th batch commit (1-based) and lets every other one through."""

    def __init__(self, *args, fail_on: Optional[int] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fail_on = fail_on
        self.commit_calls = 0
        self.committed_sizes: List[int] = []

    async def _commit(self, operations: List[BatchOperation]) -> None:
        self.commit_calls += 1
        if self.fail_on is not None and self.commit_calls == self.fail_on:
            raise DocumentStoreError(f"simulated failure on commit {self.commit_calls}")
        await super()._commit(operations)
        self.committed_sizes.append(len(operations))


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory SQLite database per test, shared across connections."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
def store(session_factory: async_sessionmaker) -> FlakyDocumentStore:
    return FlakyDocumentStore(session_factory, max_batch_size=400)


@pytest.fixture()
def ctx() -> SchoolContext:
    return SchoolContext(school_id=SCHOOL_ID)


@pytest.fixture()
def registry() -> PromotionSessionRegistry:
    return PromotionSessionRegistry()


@pytest.fixture()
def service(store: FlakyDocumentStore, registry: PromotionSessionRegistry) -> PromotionService:
    return PromotionService(store, registry, chunk_size=400, pass_mark=33)


@pytest.fixture()
async def client(service: PromotionService) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app, with the promotion service overridden."""
    app = create_app(create_tables=False)
    app.dependency_overrides[get_promotion_service] = lambda: service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def seed_school(
    store: DocumentStore,
    school_id: str = SCHOOL_ID,
    class_names: Iterable[str] = CLASS_NAMES,
    rosters: Optional[Dict[str, List[str]]] = None,
    attendance_days: int = 0,
) -> None:
    """Write class documents, roster + master copies for each listed student, and attendance history."""
    rosters = rosters or {}
    for name in class_names:
        cid = class_id_for(name)
        await store.set(paths.doc_path(paths.classes_collection(school_id), cid), {"name": name})
        ops = []
        for student_id in rosters.get(name, []):
            record = {
                "id": student_id,
                "name": f"Student {student_id}",
                "rollNo": student_id[-2:],
                "classId": cid,
                "className": name,
                "status": "present",
                "academicScores": [{"subject": "Maths", "score": 81}],
                "homework": 75,
                "attendance": {"percentage": 93},
                "wellness": {"behavior": "good", "health": "fair", "hygiene": "good"},
            }
            ops.append((paths.doc_path(paths.roster_collection(school_id, cid), student_id), record))
            ops.append((paths.doc_path(paths.master_registry_collection(school_id), student_id), record))
        for start in range(0, len(ops), 200):
            batch = store.batch()
            for path, record in ops[start:start + 200]:
                batch.set(path, record)
            await batch.commit()
    for day in range(attendance_days):
        await store.set(
            paths.doc_path(paths.attendance_history_collection(school_id), f"2026-03-{day + 1:02d}"),
            {"present": 10},
        )
    # Seeding commits should not count against failure-injection tests.
    if isinstance(store, FlakyDocumentStore):
        store.commit_calls = 0
        store.committed_sizes = []
