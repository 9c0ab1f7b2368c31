"""Search support tables.

- search_synonyms: weighted term <-> synonym pairs (stored once, read both ways)
- search_logs: one row per search call, written best-effort for analytics
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from partsearch.stores.postgres import Base


class SearchSynonym(Base):
    __tablename__ = "search_synonyms"
    __table_args__ = (UniqueConstraint("term", "synonym", name="uq_search_synonyms_term_synonym"),)

    id: Mapped[int] = mapped_column(primary_key=True)

    # Lowercased phrases
    term: Mapped[str] = mapped_column(String(100), index=True)
    synonym: Mapped[str] = mapped_column(String(100), index=True)

    # Confidence in [0, 1]; ranking only uses pairs >= 0.8
    weight: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False), default=1.0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class SearchLog(Base):
    __tablename__ = "search_logs"

    id: Mapped[int] = mapped_column(primary_key=True)

    search_query: Mapped[str | None] = mapped_column(Text)
    manufacturer_id: Mapped[int | None] = mapped_column(Integer, index=True)
    category_id: Mapped[int | None] = mapped_column(Integer, index=True)
    # Comma-separated model ids (model_id and model_ids merged)
    model_ids: Mapped[str | None] = mapped_column(String(200))
    sort_option: Mapped[str | None] = mapped_column(String(20))
    page: Mapped[int] = mapped_column(Integer, default=1)
    page_size: Mapped[int] = mapped_column(Integer, default=10)

    results_count: Mapped[int] = mapped_column(Integer, default=0, index=True)

    search_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )
