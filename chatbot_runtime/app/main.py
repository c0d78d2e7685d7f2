"""FastAPI application entrypoint."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app import __version__
from app.config import get_settings
from app.db import async_session_factory, engine
from app.errors import register_exception_handlers
from app.logging_config import configure_logging, get_logger
from app.middleware.correlation_id import CorrelationIdMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.routers import api_health_router, health_router, public_chat_router
from app.services.llm_service import get_llm_service
from app.services.tag_catalog import seed_system_tags

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown: logging, optional system tag seeding; closes the LLM client and DB pool."""
    configure_logging()
    settings = get_settings()
    if settings.seed_system_tags:
        async with async_session_factory() as session:
            await seed_system_tags(session)
            await session.commit()
    logger.info("app_started", version=__version__, env=settings.app_env)
    yield
    await get_llm_service().aclose()
    await engine.dispose()
    logger.info("app_shutdown")


app = FastAPI(
    title="Chatbot Runtime",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)

app.include_router(api_health_router)
app.include_router(health_router)
app.include_router(public_chat_router)


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint: app name and version."""
    return {"name": "chatbot_runtime", "version": __version__}
