# bot_main.py
"""
Process entry point: environment, logging, database, caches, then the
Discord client.

Environment:
  DISCORD_TOKEN           gateway token (required)
  GUILD_ID                guild for instant slash-command sync (optional)
  PROOF_TTL_SECONDS       pending-proof staleness, 0 disables (default 600)
  AUTH_TIMEOUT_SECONDS    pending manager-auth window (default 60)
  LOG_LEVEL               logging level name (default DEBUG)
  database settings       see stockbot/db_helpers.py
"""

import asyncio
import logging
import os

from dotenv import load_dotenv

load_dotenv()

from stockbot.auth_gate import DEFAULT_AUTH_TIMEOUT_SECONDS, AuthGate
from stockbot.db_helpers import create_session_factory
from stockbot.discord_gateway import StockbotClient
from stockbot.pending_proof_cache import PendingProofCache
from stockbot.query_store import QueryStore
from stockbot.seed_config import seed_defaults


logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "DEBUG").upper(), logging.DEBUG),
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n",
)
# the gateway is chatty at DEBUG
logging.getLogger("discord").setLevel(logging.INFO)
logger = logging.getLogger("stockbot")

DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
GUILD_ID = os.getenv("GUILD_ID")
PROOF_TTL_SECONDS = float(os.getenv("PROOF_TTL_SECONDS", "600"))
AUTH_TIMEOUT_SECONDS = float(os.getenv("AUTH_TIMEOUT_SECONDS", str(DEFAULT_AUTH_TIMEOUT_SECONDS)))


async def main() -> None:
    if not DISCORD_TOKEN:
        raise RuntimeError("DISCORD_TOKEN is not set")

    session_factory = create_session_factory()
    store = QueryStore(session_factory)
    logger.info("✅ Tabelas verificadas.")

    await seed_defaults(store)

    client = StockbotClient(
        store=store,
        proofs=PendingProofCache(ttl_seconds=PROOF_TTL_SECONDS),
        auth=AuthGate(timeout_seconds=AUTH_TIMEOUT_SECONDS),
        guild_id=GUILD_ID,
    )
    async with client:
        await client.start(DISCORD_TOKEN)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down")
