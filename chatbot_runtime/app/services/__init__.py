"""Business logic services."""
from app.services.tenant_service import resolve_chatbot
from app.services.llm_service import LLMService
from app.services.chat_runtime_service import ChatRuntimeService

__all__ = [
    "resolve_chatbot",
    "LLMService",
    "ChatRuntimeService",
]
