"""Visitor-facing chat API: POST /public/chat (no auth; rate limited by middleware)."""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.db import get_db
from app.schemas.chat import ChatRequest, ChatResponseData, ChatSourceItem
from app.schemas.common import Envelope
from app.services.chat_runtime_service import ChatRuntimeInput, ChatRuntimeService
from app.services.llm_service import HistoryTurn, LLMService, get_llm_service
from app.utils.disconnect import ClientDisconnected, cancel_on_disconnect

router = APIRouter(prefix="/public", tags=["public_chat"])

# nginx convention: client closed request
STATUS_CLIENT_CLOSED_REQUEST = 499


def get_chat_runtime_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    llm_service: LLMService = Depends(get_llm_service),
) -> ChatRuntimeService:
    """One pipeline instance per request, bound to the request session; the LLM client is shared."""
    return ChatRuntimeService(db, settings, llm_service=llm_service)


@router.post("/chat", response_model=Envelope[ChatResponseData])
async def post_public_chat(
    payload: ChatRequest,
    request: Request,
    service: ChatRuntimeService = Depends(get_chat_runtime_service),
    settings: Settings = Depends(get_settings),
):
    """Answer a visitor question from the chatbot's own tagged knowledge."""
    runtime_input = ChatRuntimeInput(
        message=payload.message,
        chatbot_id=payload.chatbot_id,
        domain=payload.domain,
        history=tuple(HistoryTurn(role=h.role, content=h.content) for h in payload.history or []),
    )
    try:
        result = await cancel_on_disconnect(
            request,
            service.chat(runtime_input),
            poll_seconds=settings.chat_disconnect_poll_seconds,
        )
    except ClientDisconnected:
        return Response(status_code=STATUS_CLIENT_CLOSED_REQUEST)

    data = ChatResponseData(
        answer=result.answer,
        source_items=[
            ChatSourceItem(entity_id=s.entity_id, entity_type=s.entity_type, tags=s.tags)
            for s in result.source_items
        ],
    )
    return Envelope[ChatResponseData](success=True, data=data, error=None)
