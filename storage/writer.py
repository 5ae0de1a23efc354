"""Persistence writer: assigns ids and appends accepted items."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from core import ContentCandidate, ContentItem

from .content_store import ContentStore


logger = logging.getLogger(__name__)


def new_item_id() -> str:
    return f"qb_{uuid4().hex}"


class PersistenceWriter:
    """Appends items without read-before-write; dry runs skip the store."""

    def __init__(self, store: ContentStore, *, dry_run: bool = False) -> None:
        self.store = store
        self.dry_run = dry_run

    def write(
        self,
        candidate: ContentCandidate,
        payload: Dict[str, Any],
        *,
        calibrated_difficulty: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ContentItem:
        """
        Build and append a ContentItem

        Raises:
            PersistenceError: propagated from the store; aborts only this item
        """
        key = candidate.key
        item = ContentItem(
            id=new_item_id(),
            skill_node=key.skill_node,
            difficulty=key.difficulty,
            question_type=key.question_type,
            language=key.language,
            payload=payload,
            model_id=candidate.model_id,
            created_at=datetime.now(timezone.utc),
            calibrated_difficulty=calibrated_difficulty,
            metadata=dict(metadata or {}),
        )
        if self.dry_run:
            logger.debug(f"[dry-run] would store {item.id} for {key.label()}")
            return item
        self.store.append(item)
        return item
