"""
Deterministic intent classification: visitor message -> tag codes, via synonym substrings.
No LLM involved; the same message and catalog always give the same set.
"""
from typing import FrozenSet, Optional

from app.logging_config import get_logger
from app.services.tag_catalog import TagCatalog

logger = get_logger(__name__)


def _normalize(text: Optional[str]) -> str:
    """lowercase + strip; non-strings normalize to ''."""
    if not text or not isinstance(text, str):
        return ""
    return text.lower().strip()


class IntentClassifier:
    """Substring classifier over an injected TagCatalog."""

    def __init__(self, catalog: TagCatalog) -> None:
        self.catalog = catalog

    def classify(self, message: Optional[str]) -> FrozenSet[str]:
        """
        Return every tag code whose synonyms (code included) occur as a substring of the message.
        Empty set when nothing matches; raising on that is the orchestrator's job.
        """
        normalized = _normalize(message)
        if not normalized:
            return frozenset()

        matched = set()
        for entry in self.catalog.entries:
            for synonym in entry.synonyms:
                if synonym in normalized:
                    logger.debug("intent.synonym_matched", tag=entry.code, synonym=synonym)
                    matched.add(entry.code)
                    break
        return frozenset(matched)
