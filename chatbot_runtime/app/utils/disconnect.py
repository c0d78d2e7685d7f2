"""
Run a request-bound coroutine and cancel it when the HTTP client goes away.
Starlette does not cancel handlers on disconnect, so an in-flight LLM call would otherwise finish for nobody.
"""
import asyncio
from typing import Awaitable, TypeVar

from fastapi import Request

from app.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ClientDisconnected(Exception):
    """The client closed the connection before the work finished."""


async def _wait_for_disconnect(request: Request, poll_seconds: float) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(poll_seconds)


async def cancel_on_disconnect(request: Request, work: Awaitable[T], poll_seconds: float = 0.5) -> T:
    """
    Await `work`; if the client disconnects first, cancel it and raise ClientDisconnected.
    Exceptions from `work` propagate unchanged.
    """
    work_task: asyncio.Future = asyncio.ensure_future(work)
    watcher: asyncio.Future = asyncio.ensure_future(_wait_for_disconnect(request, poll_seconds))
    try:
        done, _ = await asyncio.wait({work_task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        if work_task in done:
            return work_task.result()
        if watcher.exception() is not None:
            logger.warning("request.disconnect_watch_failed", error=str(watcher.exception()))
            return await work_task
        work_task.cancel()
        await asyncio.wait({work_task})
        logger.info("request.client_disconnected", path=request.url.path)
        raise ClientDisconnected()
    finally:
        for task in (watcher, work_task):
            if not task.done():
                task.cancel()
