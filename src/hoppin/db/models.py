"""ORM models backing the SQL record store.

Every record lives in a single ``documents`` table keyed by its slash
separated path (``users/{uid}/gamification/state``). ``version`` starts at 1
and is bumped on every write; optimistic transactions compare it at commit.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from hoppin.db.base import Base


class Document(Base):
    """Maps to the 'documents' table."""

    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(String(512), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
