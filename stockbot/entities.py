# stockbot/entities.py
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()

# Transaction kinds
KIND_REGISTER = "REGISTRO"
KIND_PRODUCE = "PRODUCAO"
KIND_ADJUST = "AJUSTE"

# Proof status values. NONE is the sentinel for records created without one.
STATUS_NONE = "NENHUMA"
STATUS_PENDING = "PENDENTE"
STATUS_WITH_PROOF = "COM PROVA"
STATUS_WITHOUT_PROOF = "SEM PROVA"
STATUS_ADJUSTMENT = "AJUSTE"
STATUS_SEND_FAILED = "FALHA_ENVIO"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Owner(Base):
    __tablename__ = "owners"

    owner_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(32), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(128))

    # itemId -> quantity; zero/negative entries are never stored
    farm_stock: Mapped[dict[str, float]] = mapped_column(JSON, nullable=False, default=dict)
    production_stock: Mapped[dict[str, float]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class Transaction(Base):
    __tablename__ = "transactions"

    transaction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    executor_id: Mapped[str] = mapped_column(String(32), nullable=False)
    target_owner_id: Mapped[str] = mapped_column(String(32), nullable=False)

    # itemId -> signed quantity
    line_items: Mapped[dict[str, float]] = mapped_column(JSON, nullable=False, default=dict)

    proof_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_NONE,
    )
    proof_url: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("ix_transactions_target_owner_id", "target_owner_id"),
    )


class Configuration(Base):
    __tablename__ = "configurations"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[object] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )
