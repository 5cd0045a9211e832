# stockbot/seed_config.py

import logging
import os

from stockbot.base_utils import color_print
from stockbot.config_schema import (
    ITEMS_FARM_KEY,
    ITEMS_PRODUCTION_KEY,
    MANAGER_ROLES_KEY,
    MASTER_KEY_KEY,
    ItemRule,
    ManagerRoles,
    MasterKey,
)
from stockbot.query_store import QueryStore

logger = logging.getLogger("stockbot")

DEFAULT_FARM_ITEMS = [
    ItemRule(item_id="farinha_de_trigo", name="Farinha de Trigo"),
    ItemRule(item_id="cascas_de_semente", name="Cascas de Semente"),
    ItemRule(item_id="folhas", name="Folhas"),
    ItemRule(item_id="embalagens_plasticas", name="Embalagens Plásticas"),
    ItemRule(item_id="dinheiro_limpo", name="Dinheiro Limpo", multiple=4500, min=4500),
]

DEFAULT_PRODUCTION_ITEMS = [
    ItemRule(item_id="farinha", name="Farinha"),
]


def manager_roles_from_env() -> ManagerRoles | None:
    raw = os.getenv("MANAGER_ROLE_IDS", "")
    ids = [part.strip() for part in raw.split(",") if part.strip()]
    return ManagerRoles(ids=ids) if ids else None


def master_key_from_env() -> MasterKey | None:
    raw = (os.getenv("CHAVE_MESTRA_GERENCIAL") or "").strip()
    return MasterKey(value=raw) if raw else None


async def seed_defaults(store: QueryStore) -> dict[str, bool]:
    """
    Insert every default configuration key that is not stored yet.
    Existing values are never overwritten. Returns key -> inserted.
    """
    defaults = {
        ITEMS_FARM_KEY: DEFAULT_FARM_ITEMS,
        ITEMS_PRODUCTION_KEY: DEFAULT_PRODUCTION_ITEMS,
        MANAGER_ROLES_KEY: manager_roles_from_env(),
        MASTER_KEY_KEY: master_key_from_env(),
    }

    inserted = {}
    for key, value in defaults.items():
        if await store.has_config(key):
            if await store.get_config(key) is None:
                logger.error("%s is stored but does not decode; leaving it untouched", key)
            color_print(f"✅ {key} já está configurado no DB.", "green")
            inserted[key] = False
            continue

        if value is None:
            logger.warning("%s is not configured and no environment default was given", key)
            inserted[key] = False
            continue

        ok = await store.set_config(key, value)
        if ok:
            color_print(f"✅ {key} inserido no DB com sucesso.", "green")
        else:
            color_print(f"❌ Falha ao inserir {key} no DB.", "red")
        inserted[key] = ok
    return inserted
