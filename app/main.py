import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.promotions.router import router as promotions_router
from app.core.config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    from app.db.session import create_all

    await create_all()
    yield


def create_app(create_tables: bool = True) -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Promotion Engine", lifespan=lifespan if create_tables else None)

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(promotions_router)

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "healthy"}

    return app


app = create_app()
