"""
Grounded answer generation through the hosted LLM (OpenAI SDK).
Every LLM call of the chat runtime lives in this module. Provider failures are normalized to LLMError
with one of TIMEOUT | QUOTA_EXCEEDED | UNAVAILABLE | UNKNOWN; those codes are for logs, not clients.
"""
import asyncio
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

import openai

from app.config import Settings, get_settings
from app.logging_config import get_logger

logger = get_logger(__name__)

LLM_TIMEOUT = "TIMEOUT"
LLM_QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
LLM_UNAVAILABLE = "UNAVAILABLE"
LLM_UNKNOWN = "UNKNOWN"

# history role -> provider role
PROVIDER_ROLES = {"user": "user", "assistant": "assistant"}


class LLMError(Exception):
    """Low-level provider failure. ChatRuntimeService translates it to AppError LLM_UNAVAILABLE."""

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code


@dataclass(frozen=True)
class HistoryTurn:
    role: str  # user | assistant
    content: str


def map_provider_error(err: BaseException) -> LLMError:
    """
    SDK exception types first; then status/code field and uppercased message substrings
    (DEADLINE_EXCEEDED/TIMEOUT, RESOURCE_EXHAUSTED/429/QUOTA, UNAVAILABLE/503). Anything else is UNKNOWN.
    """
    if isinstance(err, LLMError):
        return err
    if isinstance(err, (asyncio.TimeoutError, openai.APITimeoutError)):
        return LLMError(LLM_TIMEOUT, "LLM request timed out")
    if isinstance(err, openai.RateLimitError):
        return LLMError(LLM_QUOTA_EXCEEDED, "LLM quota exceeded")
    if isinstance(err, (openai.APIConnectionError, openai.InternalServerError)):
        return LLMError(LLM_UNAVAILABLE, "LLM service unavailable")

    raw_status = getattr(err, "status", None)
    if raw_status is None:
        raw_status = getattr(err, "status_code", None)
    if raw_status is None:
        raw_status = getattr(err, "code", None)
    status = str(raw_status if raw_status is not None else "").upper()
    message = str(getattr(err, "message", None) or err).upper()

    if "DEADLINE_EXCEEDED" in status or "TIMEOUT" in status or "TIMEOUT" in message:
        return LLMError(LLM_TIMEOUT, "LLM request timed out")
    if "RESOURCE_EXHAUSTED" in status or "429" in status or "QUOTA" in message:
        return LLMError(LLM_QUOTA_EXCEEDED, "LLM quota exceeded")
    if "UNAVAILABLE" in status or "503" in status or "UNAVAILABLE" in message:
        return LLMError(LLM_UNAVAILABLE, "LLM service unavailable")
    return LLMError(LLM_UNKNOWN, "Unexpected LLM error")


def trim_history(history: Optional[Sequence[HistoryTurn]], limit: int) -> List[HistoryTurn]:
    """Keep the last `limit` turns (tail slice)."""
    if not history or limit <= 0:
        return []
    return list(history)[-limit:]


def build_system_instruction(display_name: str, locale: Optional[str] = None) -> str:
    """Fixed grounding policy. Locale is a preference and never overrides the grounding rules."""
    locale_line = (
        f'Prefer responses in locale "{locale}" only when it does not conflict with the strict grounding rules.'
        if locale
        else "Respond in clear professional English."
    )
    return " ".join(
        [
            f'You are an assistant for the chatbot "{display_name}".',
            "You must answer using ONLY the information provided in the context below.",
            "If the answer is not present in the context, clearly say that you do not know "
            "and do not have enough information.",
            "If the user asks about another chatbot or another company, say you do not have information about that.",
            "Never invent facts and never use external knowledge outside the provided context.",
            locale_line,
        ]
    )


def build_turns(history: Sequence[HistoryTurn], context_text: str, message: str) -> List[Dict[str, str]]:
    """History mapped to provider roles + one final user turn carrying context and the current question."""
    turns = [{"role": PROVIDER_ROLES.get(h.role, "user"), "content": h.content} for h in history]
    turns.append(
        {
            "role": "user",
            "content": (
                "Here is the tenant chatbot context:\n\n"
                + context_text
                + "\n\nCurrent user question:\n"
                + message
            ),
        }
    )
    return turns


class LLMService:
    """OpenAI chat completions, single attempt per request (max_retries=0)."""

    def __init__(self, settings: Settings, client: Any = None) -> None:
        """Init from app config (OPENAI_*). `client` lets tests inject a fake AsyncOpenAI."""
        self.api_key = settings.openai_api_key
        self.model = settings.openai_model
        self.timeout_seconds = settings.openai_timeout_seconds
        self.temperature = settings.openai_temperature
        self.default_history_limit = settings.max_chat_history_messages
        self._client: Any = client

    def _get_client(self):  # noqa: ANN201
        """Lazy init AsyncOpenAI; None when no API key is configured."""
        if self._client is not None:
            return self._client
        if not self.api_key:
            return None
        self._client = openai.AsyncOpenAI(
            api_key=self.api_key,
            timeout=float(self.timeout_seconds),
            max_retries=0,
        )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP pool of the lazily created client (no-op when none was created)."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def generate(self, system_instruction: str, turns: List[Dict[str, str]]) -> str:
        """Raw provider call. Raises provider exceptions untouched."""
        client = self._get_client()
        if client is None:
            raise LLMError(LLM_UNAVAILABLE, "openai_not_configured")
        resp = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": "system", "content": system_instruction}, *turns],
            temperature=self.temperature,
        )
        choices = getattr(resp, "choices", None) or []
        if not choices:
            return ""
        return choices[0].message.content or ""

    async def answer(
        self,
        display_name: str,
        message: str,
        context_text: str,
        history: Optional[Sequence[HistoryTurn]] = None,
        max_history_messages: Optional[int] = None,
        locale: Optional[str] = None,
    ) -> str:
        """
        Grounded answer for one tenant chatbot.
        Returns a non-empty string or raises LLMError (blank answers count as UNKNOWN).
        """
        limit = self.default_history_limit if max_history_messages is None else max_history_messages
        trimmed = trim_history(history, limit)
        system_instruction = build_system_instruction(display_name, locale)
        turns = build_turns(trimmed, context_text, message)

        start = time.perf_counter()
        try:
            text = await self.generate(system_instruction, turns)
        except asyncio.CancelledError:
            logger.info("llm.answer_cancelled", model=self.model)
            raise
        except Exception as e:
            mapped = map_provider_error(e)
            logger.warning(
                "llm.answer_failed",
                model=self.model,
                latency_ms=round((time.perf_counter() - start) * 1000),
                mapped_code=mapped.code,
                error=str(e),
            )
            raise mapped from e

        latency_ms = round((time.perf_counter() - start) * 1000)
        if not isinstance(text, str) or not text.strip():
            logger.warning("llm.answer_empty", model=self.model, latency_ms=latency_ms)
            raise LLMError(LLM_UNKNOWN, "Empty LLM response")
        logger.info("llm.answer_success", model=self.model, latency_ms=latency_ms, history_turns=len(trimmed))
        return text


@lru_cache
def get_llm_service() -> LLMService:
    """Process-wide LLMService: one AsyncOpenAI connection pool shared by all requests. Closed in lifespan."""
    return LLMService(get_settings())
