"""Key-value rows holding persisted analysis records, one JSON document per key."""

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from migrator.models.base import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )

    # Raw JSON text, stored exactly as written by the host
    value: Mapped[str] = mapped_column(Text, nullable=False)

    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
