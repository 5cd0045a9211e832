# stockbot/query_store.py
"""
Async query interface over the SQLAlchemy models.

Every public method runs its session work on a worker thread and never
raises: I/O and decode failures are logged and reported as None / False / [].
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stockbot.config_schema import decode_config, encode_config
from stockbot.entities import STATUS_NONE, Configuration, Owner, Transaction

logger = logging.getLogger("stockbot")

T = TypeVar("T")


@dataclass(frozen=True)
class OwnerRecord:
    owner_id: str
    channel_id: str
    display_name: Optional[str] = None
    farm_stock: dict = field(default_factory=dict)
    production_stock: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TransactionRecord:
    transaction_id: int
    kind: str
    executor_id: str
    target_owner_id: str
    line_items: dict
    proof_status: str
    proof_url: Optional[str]
    created_at: Optional[datetime]


def _owner_record(row: Owner) -> OwnerRecord:
    return OwnerRecord(
        owner_id=row.owner_id,
        channel_id=row.channel_id,
        display_name=row.display_name,
        farm_stock=dict(row.farm_stock or {}),
        production_stock=dict(row.production_stock or {}),
    )


def _transaction_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        transaction_id=row.transaction_id,
        kind=row.kind,
        executor_id=row.executor_id,
        target_owner_id=row.target_owner_id,
        line_items=dict(row.line_items or {}),
        proof_status=row.proof_status,
        proof_url=row.proof_url,
        created_at=row.created_at,
    )


class QueryStore:
    def __init__(self, session_factory: sessionmaker):
        self.SessionFactory = session_factory

    async def _run(self, label: str, fn: Callable[[Session], T], fallback: T) -> T:
        def _work() -> T:
            session = self.SessionFactory()
            try:
                return fn(session)
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        try:
            return await asyncio.to_thread(_work)
        except (SQLAlchemyError, ValueError, TypeError) as e:
            logger.error("❌ %s failed: %s", label, e, exc_info=True)
            return fallback

    # -----------------------
    # Configuration
    # -----------------------

    async def get_config(self, key: str) -> Any:
        def _get(session: Session):
            row = session.get(Configuration, key)
            if row is None:
                return None
            return decode_config(key, row.value)

        return await self._run(f"get_config({key})", _get, None)

    async def has_config(self, key: str) -> bool:
        """
        Whether a row exists for `key`, whether or not its value decodes.
        """
        def _has(session: Session) -> bool:
            return session.get(Configuration, key) is not None

        return await self._run(f"has_config({key})", _has, False)

    async def set_config(self, key: str, value: Any) -> bool:
        def _set(session: Session) -> bool:
            encoded = encode_config(key, value)
            row = session.get(Configuration, key)
            if row is None:
                session.add(Configuration(key=key, value=encoded))
            else:
                row.value = encoded
            session.commit()
            return True

        return await self._run(f"set_config({key})", _set, False)

    # -----------------------
    # Owners / stock
    # -----------------------

    async def register_owner(self, owner_id: str, channel_id: str, display_name: str | None = None) -> bool:
        def _register(session: Session) -> bool:
            row = session.get(Owner, str(owner_id))
            if row is None:
                session.add(
                    Owner(
                        owner_id=str(owner_id),
                        channel_id=str(channel_id),
                        display_name=display_name,
                        farm_stock={},
                        production_stock={},
                    )
                )
            else:
                # stocks are left untouched on re-registration
                row.channel_id = str(channel_id)
                if display_name:
                    row.display_name = display_name
            session.commit()
            return True

        return await self._run(f"register_owner({owner_id})", _register, False)

    async def get_owner(self, owner_id: str) -> OwnerRecord | None:
        def _get(session: Session):
            row = session.get(Owner, str(owner_id))
            return _owner_record(row) if row is not None else None

        return await self._run(f"get_owner({owner_id})", _get, None)

    async def get_all_farm_stocks(self) -> list[dict]:
        def _all(session: Session) -> list[dict]:
            return [dict(stock or {}) for (stock,) in session.query(Owner.farm_stock).all()]

        return await self._run("get_all_farm_stocks", _all, [])

    async def update_stock(self, owner_id: str, farm_stock: dict, production_stock: dict) -> bool:
        def _update(session: Session) -> bool:
            row = session.get(Owner, str(owner_id))
            if row is None:
                return False
            row.farm_stock = dict(farm_stock)
            row.production_stock = dict(production_stock)
            session.commit()
            return True

        return await self._run(f"update_stock({owner_id})", _update, False)

    # -----------------------
    # Transactions
    # -----------------------

    async def add_transaction(
        self,
        *,
        kind: str,
        executor_id: str,
        target_owner_id: str,
        line_items: dict,
        proof_status: str | None = None,
        proof_url: str | None = None,
    ) -> int | None:
        def _add(session: Session) -> int:
            row = Transaction(
                kind=kind,
                executor_id=str(executor_id),
                target_owner_id=str(target_owner_id),
                line_items=dict(line_items),
                proof_status=proof_status or STATUS_NONE,
                proof_url=proof_url,
            )
            session.add(row)
            session.commit()
            return row.transaction_id

        return await self._run("add_transaction", _add, None)

    async def update_transaction_status(self, transaction_id: int, status: str, proof_url: str | None) -> bool:
        def _update(session: Session) -> bool:
            row = session.get(Transaction, int(transaction_id))
            if row is None:
                return False
            row.proof_status = status
            row.proof_url = proof_url
            session.commit()
            return True

        return await self._run(f"update_transaction_status({transaction_id})", _update, False)

    async def commit_finalization(
        self,
        transaction_id: int,
        status: str,
        proof_url: str | None,
        owner_id: str,
        farm_stock: dict,
        production_stock: dict,
    ) -> bool:
        """
        Status and both stock maps in one commit: either all land or none do.
        """
        def _commit(session: Session) -> bool:
            tx = session.get(Transaction, int(transaction_id))
            owner = session.get(Owner, str(owner_id))
            if tx is None or owner is None:
                logger.error(
                    "commit_finalization: missing row (transaction=%s, owner=%s)",
                    transaction_id,
                    owner_id,
                )
                return False
            tx.proof_status = status
            tx.proof_url = proof_url
            owner.farm_stock = dict(farm_stock)
            owner.production_stock = dict(production_stock)
            session.commit()
            return True

        return await self._run(f"commit_finalization({transaction_id})", _commit, False)

    async def list_transactions(self, target_owner_id: str | None = None, limit: int = 10) -> list[TransactionRecord]:
        def _list(session: Session) -> list[TransactionRecord]:
            query = session.query(Transaction)
            if target_owner_id:
                query = query.filter(Transaction.target_owner_id == str(target_owner_id))
            rows = query.order_by(Transaction.transaction_id.desc()).limit(limit).all()
            return [_transaction_record(r) for r in rows]

        return await self._run("list_transactions", _list, [])
