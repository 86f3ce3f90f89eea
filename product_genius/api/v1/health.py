import os

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from product_genius import __version__
from product_genius.core.config import settings
from product_genius.db.session import engine

router = APIRouter()


def _pool_metrics() -> dict:
    pool = engine.pool
    metrics = {"pool_class": pool.__class__.__name__}
    for name in ("size", "checkedout", "overflow", "status"):
        reader = getattr(pool, name, None)
        metrics[name] = reader() if callable(reader) else None
    return metrics


@router.get("/health")
def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": __version__,
    }


@router.get("/health/database")
def database_health_check():
    try:
        with engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")
    except SQLAlchemyError as exc:
        return {
            "status": "unhealthy",
            "pool": {},
            "reason": f"Database connectivity check failed: {exc}",
        }
    return {"status": "healthy", "pool": _pool_metrics()}


@router.get("/")
def root():
    return {
        "message": settings.PROJECT_NAME,
        "docs": f"{settings.API_V1_STR}/docs",
        "version": __version__,
    }


@router.get(f"{settings.API_V1_STR}/version")
def get_version():
    return {
        "version": __version__,
        "commit": os.getenv("GIT_COMMIT", "unknown"),
    }
