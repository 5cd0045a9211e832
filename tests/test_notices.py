from stockbot.config_schema import ItemRule
from stockbot.notices import (
    MAX_MODAL_INPUTS,
    adjustment_notice,
    stock_notice,
    success_notice,
    transaction_modal,
)


def test_modal_is_capped_at_five_inputs():
    rules = [ItemRule(item_id=f"item_{i}", name=f"Item {i}") for i in range(8)]
    modal = transaction_modal("modal_registro_farm", "REGISTRO", rules)
    assert len(modal.inputs) == MAX_MODAL_INPUTS
    assert modal.inputs[0].label == "Quantidade de Item 0"
    assert not modal.inputs[0].required


def test_success_notice_proof_field():
    with_proof = success_notice("REGISTRO", 3, "dono", {"folhas": 1}, "http://p")
    without = success_notice("REGISTRO", 3, "dono", {"folhas": 1}, None)
    assert "http://p" in with_proof.fields[-1].value
    assert without.fields[-1].value == "Nenhuma prova anexada (Registro SEM PROVA)."


def test_adjustment_without_log_id():
    notice = adjustment_notice(None, "dono", "1", {"folhas": -50})
    assert notice.fields[0].value == "N/A"
    assert notice.fields[1].value == "**FOLHAS**: -50"


def test_empty_stock():
    assert stock_notice("CANAL", {}, "dono").description == "Nenhum item em estoque registrado."
