"""SQLAlchemy-backed question pool."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import DateTime, Index, Integer, String, Text, create_engine, func, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from core import ContentItem, CoverageKey
from utils.exceptions import ConfigurationError, PersistenceError

from .content_store import ContentStore


logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class QuestionBankRow(Base):
    """One pooled question; key fields denormalized for grouped counting."""

    __tablename__ = "question_bank"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    skill_node_id: Mapped[str] = mapped_column(String(128), nullable=False)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False)
    qtype: Mapped[str] = mapped_column(String(32), nullable=False)
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    model_id: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="ready")
    calibrated_difficulty: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    metadata_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_question_bank_coverage", "skill_node_id", "difficulty", "qtype", "language", "status"),
    )

    def __repr__(self) -> str:
        return f"<QuestionBankRow {self.id[:8]} ({self.skill_node_id} D{self.difficulty} {self.qtype}/{self.language})>"


class SqlContentStore(ContentStore):
    """Question pool in any SQLAlchemy-supported database (SQLite by default)."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        try:
            parsed = make_url(url)
        except ArgumentError as exc:
            raise ConfigurationError("Invalid STORE_URL", {"url": url}) from exc

        if parsed.drivername.startswith("sqlite") and parsed.database not in (None, "", ":memory:"):
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

        self.url = url
        self._engine = create_engine(url, echo=echo, future=True)
        self._session_factory = sessionmaker(bind=self._engine, autoflush=False, expire_on_commit=False)
        Base.metadata.create_all(self._engine)

    def append(self, item: ContentItem) -> str:
        row = QuestionBankRow(
            id=item.id,
            skill_node_id=item.skill_node,
            difficulty=item.difficulty,
            qtype=item.question_type.value,
            language=item.language.value,
            payload_json=json.dumps(item.payload, ensure_ascii=False),
            model_id=item.model_id,
            status=item.status,
            calibrated_difficulty=item.calibrated_difficulty,
            metadata_json=json.dumps(item.metadata, ensure_ascii=False, default=str),
            created_at=item.created_at,
        )
        try:
            with self._session_factory() as session:
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to append item", {"id": item.id, "error": str(exc)}) from exc
        return item.id

    def count_by_key(self) -> Dict[CoverageKey, int]:
        stmt = (
            select(
                QuestionBankRow.skill_node_id,
                QuestionBankRow.difficulty,
                QuestionBankRow.qtype,
                QuestionBankRow.language,
                func.count(QuestionBankRow.id),
            )
            .where(QuestionBankRow.status == "ready")
            .group_by(
                QuestionBankRow.skill_node_id,
                QuestionBankRow.difficulty,
                QuestionBankRow.qtype,
                QuestionBankRow.language,
            )
        )
        counts: Dict[CoverageKey, int] = {}
        with self._session_factory() as session:
            for skill_node, difficulty, qtype, language, count in session.execute(stmt):
                try:
                    key = CoverageKey(
                        skill_node=skill_node,
                        difficulty=difficulty,
                        question_type=qtype,
                        language=language,
                    )
                except ValidationError:
                    logger.debug(f"Skipping rows with unknown bucket {skill_node}/{difficulty}/{qtype}/{language}")
                    continue
                counts[key] = counts.get(key, 0) + int(count)
        return counts

    def list_items(self, key: Optional[CoverageKey] = None) -> List[ContentItem]:
        stmt = select(QuestionBankRow).order_by(QuestionBankRow.created_at)
        if key is not None:
            stmt = stmt.where(
                QuestionBankRow.skill_node_id == key.skill_node,
                QuestionBankRow.difficulty == key.difficulty,
                QuestionBankRow.qtype == key.question_type.value,
                QuestionBankRow.language == key.language.value,
            )
        with self._session_factory() as session:
            rows = list(session.scalars(stmt))
        return [self._to_item(row) for row in rows]

    @staticmethod
    def _to_item(row: QuestionBankRow) -> ContentItem:
        return ContentItem(
            id=row.id,
            skill_node=row.skill_node_id,
            difficulty=row.difficulty,
            question_type=row.qtype,
            language=row.language,
            payload=json.loads(row.payload_json or "{}"),
            model_id=row.model_id or "",
            created_at=row.created_at,
            status=row.status,
            calibrated_difficulty=row.calibrated_difficulty,
            metadata=json.loads(row.metadata_json or "{}"),
        )

    def close(self) -> None:
        self._engine.dispose()
