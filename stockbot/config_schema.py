# stockbot/config_schema.py
"""
Typed shapes for the JSON values kept in the configurations table.

Each known key decodes into its own model; the raw JSON never leaves the
store boundary. Unknown keys pass through untouched.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

ITEMS_FARM_KEY = "ITENS_FARM"
ITEMS_PRODUCTION_KEY = "ITENS_PRODUCAO"
MANAGER_ROLES_KEY = "CARGOS_GERENCIAIS"
MASTER_KEY_KEY = "CHAVE_MESTRA_GERENCIAL"


class ItemRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    item_id: str = Field(alias="idInterno", min_length=1)
    name: str = Field(alias="nome")
    multiple: float = Field(default=1, alias="multiplo")
    min: Optional[float] = None
    max: Optional[float] = None


class ItemRuleList(BaseModel):
    rules: list[ItemRule]

    @field_validator("rules")
    @classmethod
    def _unique_ids(cls, rules: list[ItemRule]) -> list[ItemRule]:
        seen: set[str] = set()
        for rule in rules:
            if rule.item_id in seen:
                raise ValueError(f"duplicate item id: {rule.item_id}")
            seen.add(rule.item_id)
        return rules


class ManagerRoles(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ids: list[str] = Field(default_factory=list)
    name: Optional[str] = Field(default=None, alias="nome")

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"ids": data}
        return data

    @field_validator("ids", mode="before")
    @classmethod
    def _ids_as_strings(cls, ids: Any) -> Any:
        if isinstance(ids, list):
            return [str(i) for i in ids]
        return ids


class MasterKey(BaseModel):
    value: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        # legacy rows hold either the bare string or {"valor": "..."}
        if isinstance(data, str):
            return {"value": data}
        if isinstance(data, dict) and "valor" in data:
            return {"value": data["valor"]}
        return data


_ITEM_RULES_ADAPTER = TypeAdapter(list[ItemRule])


def decode_config(key: str, raw: Any) -> Any:
    """
    Turn a stored JSON value into the typed shape for `key`.
    Raises pydantic.ValidationError when the stored value does not fit.
    """
    if raw is None:
        return None
    if key in (ITEMS_FARM_KEY, ITEMS_PRODUCTION_KEY):
        return ItemRuleList(rules=_ITEM_RULES_ADAPTER.validate_python(raw)).rules
    if key == MANAGER_ROLES_KEY:
        return ManagerRoles.model_validate(raw)
    if key == MASTER_KEY_KEY:
        return MasterKey.model_validate(raw)
    return raw


def encode_config(key: str, value: Any) -> Any:
    """
    Validate `value` against the schema for `key` and return the JSON-ready form.
    """
    if key in (ITEMS_FARM_KEY, ITEMS_PRODUCTION_KEY):
        rules = value if isinstance(value, ItemRuleList) else None
        if rules is None:
            items = [
                r if isinstance(r, ItemRule) else ItemRule.model_validate(r)
                for r in value
            ]
            rules = ItemRuleList(rules=items)
        return [r.model_dump(by_alias=True) for r in rules.rules]
    if key == MANAGER_ROLES_KEY:
        roles = value if isinstance(value, ManagerRoles) else ManagerRoles.model_validate(value)
        return roles.model_dump(by_alias=True, exclude_none=True)
    if key == MASTER_KEY_KEY:
        master = value if isinstance(value, MasterKey) else MasterKey.model_validate(value)
        return master.value
    return value
