import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stockbot.base_utils import format_quantity
from stockbot.item_validation import (
    EMPTY_INPUT_ERROR,
    is_manager,
    parse_modal_values,
    sum_stocks,
    update_stock,
    validate_input_quantities,
)
from stockbot.seed_config import DEFAULT_FARM_ITEMS


item_ids = st.sampled_from(["folhas", "farinha", "dinheiro_limpo", "cascas_de_semente"])
quantities = st.integers(min_value=1, max_value=10**7)
stock_maps = st.dictionaries(item_ids, quantities, max_size=4)


# =============================================================================
# validate_input_quantities
# =============================================================================

class TestValidateInputQuantities:

    def test_valid_multiple_passes(self):
        assert validate_input_quantities({"dinheiro_limpo": 4500}, DEFAULT_FARM_ITEMS) == []
        assert validate_input_quantities({"dinheiro_limpo": 9000}, DEFAULT_FARM_ITEMS) == []

    def test_below_min_and_not_multiple_reports_both(self):
        errors = validate_input_quantities({"dinheiro_limpo": 2000}, DEFAULT_FARM_ITEMS)
        assert len(errors) == 2
        assert "múltiplo de 4.500" in errors[0]
        assert "mínima" in errors[1]

    def test_empty_input(self):
        assert validate_input_quantities({}, DEFAULT_FARM_ITEMS) == [EMPTY_INPUT_ERROR]

    def test_non_positive_skips_other_checks(self):
        errors = validate_input_quantities({"dinheiro_limpo": -4500}, DEFAULT_FARM_ITEMS)
        assert errors == ["A quantidade para **Dinheiro Limpo** deve ser um número positivo."]

    @pytest.mark.parametrize("raw", ["abc", None, float("inf"), float("nan"), 0])
    def test_non_numeric_rejected(self, raw):
        errors = validate_input_quantities({"folhas": raw}, DEFAULT_FARM_ITEMS)
        assert errors == ["A quantidade para **Folhas** deve ser um número positivo."]

    def test_unknown_item_is_ignored(self):
        assert validate_input_quantities({"ouro": 3}, DEFAULT_FARM_ITEMS) == []

    def test_max_checked(self):
        from stockbot.config_schema import ItemRule

        rules = [ItemRule(item_id="folhas", name="Folhas", max=10)]
        errors = validate_input_quantities({"folhas": 11}, rules)
        assert errors == ["A quantidade máxima permitida para **Folhas** é 10."]


# =============================================================================
# update_stock
# =============================================================================

class TestUpdateStock:

    def test_over_withdrawal_removes_item(self):
        result = update_stock({"folhas": 30, "farinha": 5}, {"folhas": 50}, -1)
        assert result == {"farinha": 5}

    def test_exact_withdrawal_removes_item(self):
        assert update_stock({"folhas": 30}, {"folhas": 30}, -1) == {}

    def test_input_not_mutated(self):
        current = {"folhas": 30}
        update_stock(current, {"folhas": 5}, 1)
        assert current == {"folhas": 30}

    def test_signed_adjustment(self):
        assert update_stock({"folhas": 30}, {"folhas": -10, "farinha": 4}, 1) == {"folhas": 20, "farinha": 4}

    @given(stock_maps, stock_maps)
    @settings(max_examples=200)
    def test_add_then_subtract_restores(self, current, items):
        assert update_stock(update_stock(current, items, 1), items, -1) == current

    @given(stock_maps, st.dictionaries(item_ids, st.integers(-10**7, 10**7), max_size=4), st.sampled_from([1, -1]))
    @settings(max_examples=200)
    def test_never_leaves_non_positive_entries(self, current, items, sign):
        result = update_stock(current, items, sign)
        assert all(qty > 0 for qty in result.values())

    def test_sum_stocks(self):
        assert sum_stocks([{"folhas": 1}, {"folhas": 2, "farinha": 3}, {}]) == {"folhas": 3, "farinha": 3}


# =============================================================================
# Modal parsing / roles / formatting
# =============================================================================

def test_parse_modal_values():
    parsed = parse_modal_values({"a": " 500 ", "b": "1,5", "c": "", "d": "x", "e": "0", "f": "-20"})
    assert parsed == {"a": 500, "b": 1.5, "f": -20}
    assert isinstance(parsed["a"], int)


def test_parse_modal_values_rejects_digit_grouping():
    assert parse_modal_values({"a": "1_000", "b": "1000", "c": "4_500,5"}) == {"b": 1000}


def test_is_manager():
    assert is_manager(["1", "900"], ["900"])
    assert not is_manager(["1"], ["900"])
    assert not is_manager([], ["900"])
    assert not is_manager(["900"], [])


@pytest.mark.parametrize(
    "value, expected",
    [(4500, "4.500"), (1234.5, "1.234,5"), (7, "7"), (1000000, "1.000.000"), ("x", "x")],
)
def test_format_quantity(value, expected):
    assert format_quantity(value) == expected
