# stockbot/notices.py
"""
Content-only payloads for everything the bot shows: notices (embeds),
interactive controls and modal forms. Rendering lives in the gateway.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from stockbot.base_utils import format_line_items, format_quantity, readable_item
from stockbot.config_schema import ItemRule

COLOR_SUCCESS = "success"
COLOR_ERROR = "error"
COLOR_WARNING = "warning"
COLOR_INFO = "info"
COLOR_PANEL = "panel"

MAX_MODAL_INPUTS = 5


def _now() -> datetime:
    return datetime.now(timezone.utc)


class NoticeField(BaseModel):
    name: str
    value: str
    inline: bool = False


class Notice(BaseModel):
    title: str
    description: Optional[str] = None
    color: str = COLOR_INFO
    fields: list[NoticeField] = Field(default_factory=list)
    footer: Optional[str] = None
    footer_icon_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    timestamp: Optional[datetime] = None


class Button(BaseModel):
    custom_id: str
    label: str
    style: str = "secondary"  # primary | secondary | success | danger


class SelectOption(BaseModel):
    label: str
    value: str
    description: Optional[str] = None


class SelectMenu(BaseModel):
    custom_id: str
    placeholder: Optional[str] = None
    options: list[SelectOption] = Field(default_factory=list)


class TextInput(BaseModel):
    custom_id: str
    label: str
    placeholder: Optional[str] = None
    required: bool = False


class ModalForm(BaseModel):
    custom_id: str
    title: str
    inputs: list[TextInput] = Field(default_factory=list)


# a message's control rows: each row holds buttons or a single select menu
ComponentRow = list[Button | SelectMenu]


class InteractionReply(BaseModel):
    """
    What a handler wants done with the interaction that triggered it.
    """
    content: Optional[str] = None
    notices: list[Notice] = Field(default_factory=list)
    components: list[ComponentRow] = Field(default_factory=list)
    modal: Optional[ModalForm] = None
    ephemeral: bool = True
    # replace the message the control lives on instead of answering
    update_message: bool = False
    # answer silently (acknowledge, nothing shown)
    silent: bool = False
    # remove the message the control lives on once answered
    delete_message: bool = False


# -----------------------
# Notices
# -----------------------

def error_notice(title: str, description: str) -> Notice:
    return Notice(title=f"❌ {title}", description=description, color=COLOR_ERROR, timestamp=_now())


def success_notice(
    kind: str,
    transaction_id: int,
    executor_tag: str,
    line_items: dict,
    proof_url: str | None,
    executor_avatar_url: str | None = None,
) -> Notice:
    notice = Notice(
        title=f"✅ Transação #{transaction_id} - {kind.upper()} CONCLUÍDA",
        description=f"A transação foi registrada com sucesso por **{executor_tag}**.",
        color=COLOR_SUCCESS,
        footer=f"Finalizada por: {executor_tag}",
        footer_icon_url=executor_avatar_url,
        timestamp=_now(),
    )
    notice.fields.append(
        NoticeField(name="Itens Registrados:", value=format_line_items(line_items) or "N/A")
    )
    if proof_url:
        proof_value = f"[🔗 Clique para ver a Prova Anexada]({proof_url})"
    else:
        proof_value = "Nenhuma prova anexada (Registro SEM PROVA)."
    notice.fields.append(NoticeField(name="Comprovação", value=proof_value, inline=True))
    return notice


def proof_pending_notice(transaction_id: int, kind: str, line_items: dict) -> Notice:
    return Notice(
        title=f"⚠️ Transação #{transaction_id} Pendente de Prova",
        description=(
            f"Sua transação de **{kind.upper()}** foi registrada e aguarda a prova. "
            "Por favor, **envie a imagem de comprovação** nesta conversa."
        ),
        color=COLOR_WARNING,
        fields=[NoticeField(name="Itens Registrados:", value=format_line_items(line_items) or "N/A")],
        timestamp=_now(),
    )


def awaiting_attachment_notice(transaction_id: int) -> Notice:
    return Notice(
        title=f"⚠️ Transação #{transaction_id} Pendente de Prova",
        description=(
            "**Aguardando Anexo:** Por favor, anexe a imagem/prova no chat **agora**. "
            "**Se não conseguir, clique no botão \"Não, registrar sem prova\"**."
        ),
        color=COLOR_WARNING,
        footer="Aguardando imagem...",
    )


def stock_notice(scope: str, stock: dict, owner_tag: str | None = None, title: str | None = None) -> Notice:
    if title is None:
        title = "📦 ESTOQUE REAL GERAL" if scope == "GERAL" else f"📦 ESTOQUE DO CANAL ({owner_tag or 'N/A'})"
    description = format_line_items(stock) if stock else "Nenhum item em estoque registrado."
    return Notice(title=title, description=description, color=COLOR_INFO, timestamp=_now())


def adjustment_notice(transaction_id: int | None, owner_tag: str, owner_id: str, line_items: dict) -> Notice:
    items = "\n".join(
        f"**{readable_item(k)}**: {format_quantity(v)}" for k, v in line_items.items()
    )
    return Notice(
        title="🔧 AJUSTE MANUAL BEM-SUCEDIDO",
        description=f"O estoque de **{owner_tag}** (ID: {owner_id}) foi ajustado manualmente.",
        color=COLOR_SUCCESS,
        fields=[
            NoticeField(
                name="Transação ID",
                value=f"#{transaction_id}" if transaction_id is not None else "N/A",
                inline=True,
            ),
            NoticeField(name="Itens Ajustados", value=items or "N/A"),
        ],
        timestamp=_now(),
    )


def auth_prompt_notice(timeout_seconds: float) -> Notice:
    return Notice(
        title="🔒 Autenticação Necessária",
        description=(
            "Por favor, **digite a Chave de Acesso Gerencial** diretamente no chat "
            f"(sem comandos) nos próximos {int(timeout_seconds)} segundos."
        ),
        color=COLOR_WARNING,
        footer="A senha é esperada na próxima mensagem. Apenas você verá a confirmação.",
    )


def auth_success_notice() -> Notice:
    return Notice(
        title="✅ Autenticação Sucedida",
        description="Acesso gerencial concedido. Iniciando ação...",
        color=COLOR_SUCCESS,
    )


def transaction_log_notice(records, user_tags: dict | None = None) -> Notice:
    user_tags = user_tags or {}
    notice = Notice(
        title=f"📜 LOGS RECENTES (Últimas {len(records)} Transações)",
        description="**Filtro:** Todas as transações.\n\n",
        color=COLOR_SUCCESS,
        footer="Sistema de Controle",
        timestamp=_now(),
    )
    if not records:
        notice.fields.append(NoticeField(name="Vazio", value="Nenhuma transação encontrada."))
        return notice

    for record in records:
        target = user_tags.get(record.target_owner_id, record.target_owner_id)
        executor = user_tags.get(record.executor_id, record.executor_id)
        value = f"**Executado por**: {executor}\n**Status Prova**: {record.proof_status}\n"
        value += format_line_items(record.line_items)
        if record.proof_url:
            value += f"\n[🔗 Prova Anexada]({record.proof_url})"
        notice.fields.append(
            NoticeField(name=f"[#{record.transaction_id}] {record.kind} - Alvo: {target}", value=value)
        )
    return notice


# -----------------------
# Controls
# -----------------------

def panel_notice(owner_tag: str | None, guild_icon_url: str | None = None) -> Notice:
    safe_tag = owner_tag or "Admin"
    return Notice(
        title="🛠️ Painel da Tropa 🏆",
        description=(
            f"**Boas-vindas, {safe_tag}**!\n\n"
            "Este é o seu painel de controle de operações. Use os botões abaixo para registrar "
            "produção, ajustar estoque ou visualizar logs.\n\n"
            "**Status:** 🟢 Online e Operacional."
        ),
        color=COLOR_PANEL,
        thumbnail_url=guild_icon_url,
        footer=f"Canal associado a {safe_tag}",
        timestamp=_now(),
    )


def panel_components() -> list[ComponentRow]:
    return [
        [
            Button(custom_id="btn_registro_farm", label="🌱 Registro Farm", style="success"),
            Button(custom_id="btn_producao", label="🛠️ Registrar Produção", style="success"),
            Button(custom_id="btn_consulta_estoque", label="📦 Consulta Estoque", style="primary"),
        ],
        [
            Button(custom_id="btn_visualizar_estoque", label="📈 Visualizar Estoque", style="primary"),
            Button(custom_id="btn_ajuste_estoque", label="📦 Ajuste Manual", style="danger"),
            Button(custom_id="btn_log_gerencial", label="📜 Logs de Transação", style="secondary"),
        ],
    ]


def proof_choice_components(transaction_id: int) -> list[ComponentRow]:
    return [[
        Button(custom_id=f"proof_yes_{transaction_id}", label="Sim, com prova", style="success"),
        Button(custom_id=f"proof_no_{transaction_id}", label="Não, registrar sem prova", style="secondary"),
    ]]


def decline_only_components(transaction_id: int) -> list[ComponentRow]:
    return [[
        Button(custom_id=f"proof_no_{transaction_id}", label="Não, registrar sem prova", style="secondary"),
    ]]


def stock_query_menu(include_general: bool) -> SelectMenu:
    menu = SelectMenu(
        custom_id="select_consulta_estoque",
        placeholder="Selecione o tipo de consulta...",
        options=[
            SelectOption(
                label="Estoque do Meu Canal",
                value="consulta_canal",
                description="Consulta o estoque do dono deste canal.",
            )
        ],
    )
    if include_general:
        menu.options.append(
            SelectOption(
                label="Estoque Real Geral",
                value="consulta_geral",
                description="Consulta o estoque FARM total de todos os canais (Acesso via Cargo).",
            )
        )
    return menu


def transaction_modal(custom_id: str, title: str, rules: list[ItemRule]) -> ModalForm:
    # the platform caps a modal at five inputs
    return ModalForm(
        custom_id=custom_id,
        title=title,
        inputs=[
            TextInput(
                custom_id=rule.item_id,
                label=f"Quantidade de {rule.name}",
                placeholder="Digite a quantidade (ex: 500000)",
                required=False,
            )
            for rule in rules[:MAX_MODAL_INPUTS]
        ],
    )
