"""
Public chat orchestration: one sequential pass per request, no retries, fail-closed.

ResolvingTenant -> ClassifyingIntent -> RetrievingKnowledge -> RankingContext -> GeneratingAnswer -> Done
Early exits: ChatbotNotFound (404), NoRelevantTag (400, retrieval never runs), LlmUnavailable (503).
"""
import enum
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.errors import LLM_UNAVAILABLE, NO_RELEVANT_TAG, AppError
from app.logging_config import get_logger
from app.services.context_ranker import select_context_items
from app.services.context_serializer import build_context_text
from app.services.intent_classifier import IntentClassifier
from app.services.knowledge_items import KnowledgeItem
from app.services.knowledge_retriever import KnowledgeRetriever, KnowledgeStore, SqlKnowledgeStore
from app.services.llm_service import HistoryTurn, LLMError, LLMService, get_llm_service
from app.services.tag_catalog import load_tag_catalog
from app.services.tenant_service import resolve_chatbot

logger = get_logger(__name__)


class ChatState(str, enum.Enum):
    RESOLVING_TENANT = "ResolvingTenant"
    CLASSIFYING_INTENT = "ClassifyingIntent"
    RETRIEVING_KNOWLEDGE = "RetrievingKnowledge"
    RANKING_CONTEXT = "RankingContext"
    GENERATING_ANSWER = "GeneratingAnswer"
    DONE = "Done"
    CHATBOT_NOT_FOUND = "ChatbotNotFound"
    NO_RELEVANT_TAG = "NoRelevantTag"
    LLM_UNAVAILABLE = "LlmUnavailable"


@dataclass(frozen=True)
class ChatRuntimeInput:
    message: str
    chatbot_id: Optional[int] = None
    domain: Optional[str] = None
    history: Sequence[HistoryTurn] = ()


@dataclass(frozen=True)
class SourceItem:
    entity_id: int
    entity_type: str
    tags: List[str]


@dataclass(frozen=True)
class ChatRuntimeResult:
    answer: str
    source_items: List[SourceItem] = field(default_factory=list)


class ChatRuntimeService:
    """
    Wires the pipeline stages for one request.
    classifier/store are built from the request session unless injected; llm_service defaults to the process-wide one.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        llm_service: Optional[LLMService] = None,
        classifier: Optional[IntentClassifier] = None,
        store: Optional[KnowledgeStore] = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.llm_service = llm_service or get_llm_service()
        self.classifier = classifier
        self.retriever = KnowledgeRetriever(store or SqlKnowledgeStore(db))
        self.state = ChatState.RESOLVING_TENANT

    def _enter(self, state: ChatState, **kw) -> None:
        self.state = state
        logger.debug("chat.state", state=state.value, **kw)

    async def _classifier(self) -> IntentClassifier:
        if self.classifier is None:
            self.classifier = IntentClassifier(await load_tag_catalog(self.db))
        return self.classifier

    async def chat(self, payload: ChatRuntimeInput) -> ChatRuntimeResult:
        """Run the pipeline once. Raises AppError on any business failure; never returns partial answers."""
        self._enter(ChatState.RESOLVING_TENANT)
        try:
            chatbot = await resolve_chatbot(self.db, chatbot_id=payload.chatbot_id, domain=payload.domain)
        except AppError:
            self._enter(ChatState.CHATBOT_NOT_FOUND)
            raise
        logger.info("chat.tenant_resolved", chatbot_id=chatbot.chatbot_id)

        self._enter(ChatState.CLASSIFYING_INTENT, chatbot_id=chatbot.chatbot_id)
        classifier = await self._classifier()
        tags = sorted(classifier.classify(payload.message))
        if not tags:
            self._enter(ChatState.NO_RELEVANT_TAG, chatbot_id=chatbot.chatbot_id)
            logger.info("chat.no_relevant_tag", chatbot_id=chatbot.chatbot_id)
            raise AppError("No relevant tags for this question", 400, NO_RELEVANT_TAG)

        self._enter(ChatState.RETRIEVING_KNOWLEDGE, chatbot_id=chatbot.chatbot_id, tags=tags)
        items = await self.retriever.fetch(chatbot.chatbot_id, tags)

        self._enter(ChatState.RANKING_CONTEXT, candidates=len(items))
        selected: List[KnowledgeItem] = select_context_items(items, self.settings.max_context_items)
        context_text = build_context_text(selected)

        self._enter(ChatState.GENERATING_ANSWER, selected=len(selected))
        try:
            answer = await self.llm_service.answer(
                display_name=chatbot.display_name,
                message=payload.message,
                context_text=context_text,
                history=list(payload.history),
                max_history_messages=self.settings.max_chat_history_messages,
                locale=self.settings.chat_locale,
            )
        except LLMError as e:
            self._enter(ChatState.LLM_UNAVAILABLE)
            logger.warning("chat.llm_unavailable", chatbot_id=chatbot.chatbot_id, llm_code=e.code)
            raise AppError("The assistant is temporarily unavailable", 503, LLM_UNAVAILABLE) from e

        self._enter(ChatState.DONE)
        logger.info("chat.answered", chatbot_id=chatbot.chatbot_id, tags=tags, sources=len(selected))
        return ChatRuntimeResult(
            answer=answer,
            source_items=[
                SourceItem(entity_id=item.entity_id, entity_type=item.kind, tags=list(tags))
                for item in selected
            ],
        )
