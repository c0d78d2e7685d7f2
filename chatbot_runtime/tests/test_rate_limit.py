"""
Public chat rate limit: key derivation, pass-through without Redis, 429 envelope when over budget.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from app.config import Settings
from app.main import app
from app.middleware.rate_limit import _rate_limit_key
from app.routers.public_chat_router import get_chat_runtime_service
from app.services.chat_runtime_service import ChatRuntimeResult


def _request(path: str, headers=None, client=("10.0.0.5", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
        "server": ("test", 80),
        "scheme": "http",
    }
    return Request(scope)


def test_key_only_for_public_chat() -> None:
    assert _rate_limit_key(_request("/health")) is None
    assert _rate_limit_key(_request("/public/chat")) == "ip:10.0.0.5"
    assert _rate_limit_key(_request("/public/chat/")) == "ip:10.0.0.5"


def test_forwarded_header_ignored_without_trusted_proxy() -> None:
    """Rotating X-Forwarded-For from one socket keeps a single bucket."""
    keys = {
        _rate_limit_key(_request("/public/chat", headers={"X-Forwarded-For": f"10.0.0.{i}"}, client=("203.0.113.9", 4000)))
        for i in range(5)
    }
    assert keys == {"ip:203.0.113.9"}


def test_trusted_proxy_hop_selects_address_seen_by_proxy() -> None:
    """Behind one proxy, only the entry that proxy appended counts; spoofed entries to its left do not."""
    for spoofed in ("1.1.1.1", "2.2.2.2"):
        req = _request(
            "/public/chat",
            headers={"X-Forwarded-For": f"{spoofed}, 198.51.100.7"},
            client=("10.0.0.2", 4000),
        )
        assert _rate_limit_key(req, trusted_proxy_hops=1) == "ip:198.51.100.7"

    two_proxies = _request("/public/chat", headers={"X-Forwarded-For": "9.9.9.9, 198.51.100.7, 10.0.0.3"})
    assert _rate_limit_key(two_proxies, trusted_proxy_hops=2) == "ip:198.51.100.7"

    no_header = _request("/public/chat", client=("10.0.0.2", 4000))
    assert _rate_limit_key(no_header, trusted_proxy_hops=1) == "ip:10.0.0.2"


def test_key_without_client_info() -> None:
    assert _rate_limit_key(_request("/public/chat", client=None)) == "ip:unknown"


@pytest.fixture
def ok_service():
    service = MagicMock()
    service.chat = AsyncMock(return_value=ChatRuntimeResult(answer="ok"))
    app.dependency_overrides[get_chat_runtime_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


async def _post():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/public/chat", json={"chatbotId": 1, "message": "hello"})


@pytest.mark.asyncio
async def test_rate_limit_exceeded_returns_429_envelope(ok_service) -> None:
    settings = Settings(REDIS_URL="redis://localhost:6379/0", PUBLIC_CHAT_RATE_LIMIT_PER_MIN=20)
    with patch("app.middleware.rate_limit.get_settings", return_value=settings), patch(
        "app.middleware.rate_limit._check_sliding_window", AsyncMock(return_value=False)
    ) as check:
        resp = await _post()

    assert resp.status_code == 429
    assert resp.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert resp.json()["success"] is False
    check.assert_awaited_once_with("redis://localhost:6379/0", "ip:127.0.0.1", 20)
    ok_service.chat.assert_not_called()


@pytest.mark.asyncio
async def test_within_budget_passes_through(ok_service) -> None:
    settings = Settings(REDIS_URL="redis://localhost:6379/0")
    with patch("app.middleware.rate_limit.get_settings", return_value=settings), patch(
        "app.middleware.rate_limit._check_sliding_window", AsyncMock(return_value=True)
    ):
        resp = await _post()
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_no_redis_means_no_limit(ok_service) -> None:
    settings = Settings(REDIS_URL=None)
    with patch("app.middleware.rate_limit.get_settings", return_value=settings), patch(
        "app.middleware.rate_limit._check_sliding_window", AsyncMock(return_value=False)
    ) as check:
        resp = await _post()
    assert resp.status_code == 200
    check.assert_not_called()


@pytest.mark.asyncio
async def test_spoofed_forwarded_for_shares_socket_bucket(ok_service) -> None:
    settings = Settings(REDIS_URL="redis://localhost:6379/0")
    with patch("app.middleware.rate_limit.get_settings", return_value=settings), patch(
        "app.middleware.rate_limit._check_sliding_window", AsyncMock(return_value=True)
    ) as check:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            for i in range(3):
                await client.post(
                    "/public/chat",
                    json={"chatbotId": 1, "message": "hello"},
                    headers={"X-Forwarded-For": f"10.9.9.{i}"},
                )

    assert {c.args[1] for c in check.await_args_list} == {"ip:127.0.0.1"}
