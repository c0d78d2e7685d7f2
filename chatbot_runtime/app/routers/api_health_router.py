# /api/healthz (liveness), /api/readyz (readiness: DB, tag catalog, Redis when configured).
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db import get_db
from app.logging_config import get_logger
from app.models import Tag

router = APIRouter(prefix="/api", tags=["health"])
logger = get_logger(__name__)


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


async def _redis_ok(redis_url: str) -> bool:
    from redis.asyncio import Redis

    client = Redis.from_url(redis_url, decode_responses=True)
    try:
        await client.ping()
        return True
    except Exception as e:
        logger.warning("readyz.redis_fail", error=str(e))
        return False
    finally:
        await client.aclose()


@router.get("/readyz")
async def readyz(db: AsyncSession = Depends(get_db)):
    """
    503 when the database or Redis (if REDIS_URL is set) does not answer.
    An empty tag catalog is reported but not fatal: every chat would end in NO_RELEVANT_TAG.
    """
    checks: dict[str, object] = {"db": "ok", "redis": "skipped"}
    try:
        checks["tags"] = int((await db.execute(select(func.count()).select_from(Tag))).scalar_one())
    except Exception as e:
        logger.warning("readyz.db_fail", error=str(e))
        return JSONResponse(status_code=503, content={"status": "unhealthy", "db": "fail"})
    if checks["tags"] == 0:
        logger.warning("readyz.empty_tag_catalog")

    redis_url = get_settings().redis_url
    if redis_url:
        if not await _redis_ok(redis_url):
            return JSONResponse(status_code=503, content={"status": "unhealthy", "redis": "fail"})
        checks["redis"] = "ok"

    return {"status": "ok", **checks}
