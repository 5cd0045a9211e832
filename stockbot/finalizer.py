# stockbot/finalizer.py

import logging
from dataclasses import dataclass
from typing import Optional

from stockbot.entities import KIND_PRODUCE, KIND_REGISTER
from stockbot.events import Actor, Messenger
from stockbot.item_validation import update_stock
from stockbot.notices import success_notice
from stockbot.pending_proof_cache import PendingProof
from stockbot.query_store import OwnerRecord, QueryStore

logger = logging.getLogger("stockbot")


@dataclass(frozen=True)
class FinalizeResult:
    owner_id: str
    channel_id: str
    owner_display_name: Optional[str]


def normalize_proof_url(proof_url) -> str | None:
    if isinstance(proof_url, str) and proof_url:
        return proof_url
    if proof_url is not None:
        logger.warning(
            "[FINALIZE] proof_url received as %s (%r); forcing None.",
            type(proof_url).__name__,
            proof_url,
        )
    return None


async def finalize_transaction(
    store: QueryStore,
    messenger: Messenger,
    entry: PendingProof,
    status: str,
    proof_url,
    owner: OwnerRecord,
    executor: Actor,
    channel_id: str,
) -> FinalizeResult | None:
    """
    Close a pending REGISTER/PRODUCE transaction.

    1. normalize the proof url
    2. + 4. persist the status and the new stocks (one atomic store call)
    3. apply the line items to the matching stock map (always +1)
    5. post the success notice in `channel_id`
    6. return owner/channel info so the caller can refresh the panel

    Returns None when any step fails; nothing after the failing step runs.
    """
    try:
        final_url = normalize_proof_url(proof_url)

        farm_stock = dict(owner.farm_stock)
        production_stock = dict(owner.production_stock)
        if entry.kind == KIND_REGISTER:
            farm_stock = update_stock(owner.farm_stock, entry.line_items, 1)
        elif entry.kind == KIND_PRODUCE:
            production_stock = update_stock(owner.production_stock, entry.line_items, 1)
        else:
            logger.error("[FINALIZE] transaction #%s has unexpected kind %s", entry.transaction_id, entry.kind)
            return None

        committed = await store.commit_finalization(
            entry.transaction_id,
            status,
            final_url,
            owner.owner_id,
            farm_stock,
            production_stock,
        )
        if not committed:
            logger.error("[FINALIZE] store rejected transaction #%s", entry.transaction_id)
            return None

        logger.info(
            "[FINALIZE] transaction #%s %s -> %s (owner %s)",
            entry.transaction_id,
            entry.kind,
            status,
            owner.owner_id,
        )

        notice = success_notice(
            entry.kind,
            entry.transaction_id,
            executor.tag,
            entry.line_items,
            final_url,
            executor.avatar_url,
        )
        sent = await messenger.send(channel_id, notices=[notice])
        if sent is None:
            logger.error("[FINALIZE] success notice for #%s could not be sent", entry.transaction_id)
            return None

        return FinalizeResult(
            owner_id=owner.owner_id,
            channel_id=owner.channel_id,
            owner_display_name=owner.display_name,
        )
    except Exception:
        logger.exception("[FINALIZE] transaction #%s failed", entry.transaction_id)
        return None
