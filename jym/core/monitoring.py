"""Health checks and monitoring endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import redis.asyncio as redis

from jym.config.database import get_db
from jym.config.settings import get_settings

health_router = APIRouter()
settings = get_settings()


@health_router.get("")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "jym"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Health of the database and the task broker"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "broker": "unknown",
        "overall": "unknown"
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    try:
        client = redis.from_url(settings.CELERY_BROKER_URL)
        await client.ping()
        await client.aclose()
        checks["broker"] = "healthy"
    except Exception as e:
        checks["broker"] = f"unhealthy: {str(e)}"

    if all(status == "healthy" for status in checks.values() if status != "unknown"):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    return checks
