import pydantic
import pytest

from stockbot.config_schema import (
    ITEMS_FARM_KEY,
    MANAGER_ROLES_KEY,
    MASTER_KEY_KEY,
    ItemRule,
    ManagerRoles,
    MasterKey,
    decode_config,
    encode_config,
)


class TestItemRules:

    def test_decode_stored_shape(self):
        raw = [{"idInterno": "dinheiro_limpo", "nome": "Dinheiro Limpo", "multiplo": 4500, "min": 4500, "max": None}]
        rules = decode_config(ITEMS_FARM_KEY, raw)
        assert rules == [ItemRule(item_id="dinheiro_limpo", name="Dinheiro Limpo", multiple=4500, min=4500)]

    def test_missing_multiple_defaults_to_one(self):
        rules = decode_config(ITEMS_FARM_KEY, [{"idInterno": "folhas", "nome": "Folhas"}])
        assert rules[0].multiple == 1

    def test_encode_uses_stored_field_names(self):
        encoded = encode_config(ITEMS_FARM_KEY, [ItemRule(item_id="folhas", name="Folhas")])
        assert encoded == [{"idInterno": "folhas", "nome": "Folhas", "multiplo": 1, "min": None, "max": None}]

    def test_duplicate_ids_rejected(self):
        raw = [{"idInterno": "folhas", "nome": "A"}, {"idInterno": "folhas", "nome": "B"}]
        with pytest.raises(pydantic.ValidationError):
            decode_config(ITEMS_FARM_KEY, raw)


class TestMasterKey:

    @pytest.mark.parametrize("raw", ["Tropa456", {"valor": "Tropa456"}])
    def test_both_stored_forms_decode(self, raw):
        assert decode_config(MASTER_KEY_KEY, raw) == MasterKey(value="Tropa456")

    def test_encodes_as_bare_string(self):
        assert encode_config(MASTER_KEY_KEY, {"valor": "Tropa456"}) == "Tropa456"

    def test_empty_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            decode_config(MASTER_KEY_KEY, "")


class TestManagerRoles:

    def test_numeric_ids_become_strings(self):
        roles = decode_config(MANAGER_ROLES_KEY, {"ids": [1427501248344490056, "2"]})
        assert roles.ids == ["1427501248344490056", "2"]

    def test_bare_list_accepted(self):
        assert decode_config(MANAGER_ROLES_KEY, ["1", "2"]) == ManagerRoles(ids=["1", "2"])


def test_unknown_key_passes_through():
    assert decode_config("OUTRA", {"x": 1}) == {"x": 1}
    assert decode_config(ITEMS_FARM_KEY, None) is None
