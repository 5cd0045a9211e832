# stockbot/item_validation.py
"""
Quantity validation and stock arithmetic.

Everything here is pure: no storage, no messaging. Callers persist results.
"""

import math
from typing import Iterable, Mapping

from stockbot.base_utils import format_quantity
from stockbot.config_schema import ItemRule

EMPTY_INPUT_ERROR = "Por favor, preencha a quantidade de pelo menos um item."


def _to_float(raw) -> float | None:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def validate_input_quantities(input_data: Mapping[str, object], rules: Iterable[ItemRule]) -> list[str]:
    """
    Check user-entered quantities against the item rules.
    Returns the list of error messages; empty means valid.
    """
    errors: list[str] = []
    rule_map = {rule.item_id: rule for rule in rules or []}

    for key, raw_value in input_data.items():
        rule = rule_map.get(key)
        if rule is None:
            continue

        quantity = _to_float(raw_value)

        if quantity is None or not math.isfinite(quantity) or quantity <= 0:
            errors.append(f"A quantidade para **{rule.name}** deve ser um número positivo.")
            continue

        if rule.multiple > 0 and quantity % rule.multiple != 0:
            errors.append(
                f"A quantidade de **{rule.name}** precisa ser um múltiplo de {format_quantity(rule.multiple)}."
            )

        if rule.min and quantity < rule.min:
            errors.append(f"A quantidade mínima para **{rule.name}** é {format_quantity(rule.min)}.")

        if rule.max and quantity > rule.max:
            errors.append(
                f"A quantidade máxima permitida para **{rule.name}** é {format_quantity(rule.max)}."
            )

    if not input_data:
        errors.append(EMPTY_INPUT_ERROR)

    return errors


def update_stock(current_stock: Mapping[str, float], line_items: Mapping[str, float], sign: int) -> dict:
    """
    Add (sign=1) or subtract (sign=-1) line items from a stock map.

    Entries that end at zero or below are dropped, so an over-withdrawal
    leaves the item absent rather than negative.
    """
    new_stock = dict(current_stock or {})

    for item_id, quantity in line_items.items():
        new_stock[item_id] = new_stock.get(item_id, 0) + sign * quantity

    return {item_id: qty for item_id, qty in new_stock.items() if qty > 0}


def sum_stocks(stocks: Iterable[Mapping[str, float]]) -> dict:
    total: dict = {}
    for stock in stocks:
        total = update_stock(total, stock, 1)
    return total


def _as_number(value: float):
    return int(value) if value.is_integer() else value


def parse_modal_values(fields: Mapping[str, str]) -> dict:
    """
    Clean raw modal text inputs into numbers.

    '1,5' reads as 1.5; blanks, non-numbers and zeros are dropped.
    """
    values = {}
    for key, raw in fields.items():
        text = str(raw or "").strip().replace(",", ".", 1)
        # float() would accept digit grouping like '1_000'
        if not text or "_" in text:
            continue
        number = _to_float(text)
        if number is None or not math.isfinite(number) or number == 0:
            continue
        values[key] = _as_number(number)
    return values


def is_manager(role_ids: Iterable[str], manager_role_ids: Iterable[str]) -> bool:
    roles = {str(r) for r in role_ids or []}
    required = {str(r) for r in manager_role_ids or []}
    if not roles or not required:
        return False
    return not roles.isdisjoint(required)
