from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ebh.api.api_v1.api import api_router as api_v1_router
from ebh.core.config import settings
from ebh.core.errors import register_exception_handlers
from ebh.core.logging_config import setup_logging, get_logger
from ebh.services.scheduler import init_scheduler, shutdown_scheduler, get_scheduler_status
from ebh.db.session import SessionLocal
from ebh.db.init_db import ensure_tables_exist, seed_lookups

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown"""
    logger.info("🚀 Starting up...")

    try:
        await ensure_tables_exist()
        async with SessionLocal() as db:
            await seed_lookups(db)
        logger.info("📊 Database ready")
    except Exception as e:
        logger.warning(f"Database initialisation warning: {e}")

    init_scheduler()
    yield
    logger.info("🛑 Shutting down...")
    shutdown_scheduler()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="Construction materials inventory - single operator",
    lifespan=lifespan
)

register_exception_handlers(app)

if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"CORS origins: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "scheduler": get_scheduler_status()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")
