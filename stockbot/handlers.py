# stockbot/handlers.py

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from stockbot.auth_gate import AuthGate
from stockbot.config_schema import (
    ITEMS_FARM_KEY,
    ITEMS_PRODUCTION_KEY,
    MANAGER_ROLES_KEY,
    MASTER_KEY_KEY,
    ItemRule,
)
from stockbot.entities import (
    KIND_ADJUST,
    KIND_PRODUCE,
    KIND_REGISTER,
    STATUS_ADJUSTMENT,
    STATUS_PENDING,
    STATUS_SEND_FAILED,
    STATUS_WITH_PROOF,
    STATUS_WITHOUT_PROOF,
)
from stockbot.errors import (
    ConfigMissingError,
    SessionExpiredError,
    StockbotError,
    StoreError,
    ValidationError,
)
from stockbot.events import (
    ButtonPress,
    ChatMessage,
    Messenger,
    ModalSubmit,
    PanelCommand,
    SelectChoice,
)
from stockbot.finalizer import finalize_transaction
from stockbot.item_validation import (
    is_manager,
    parse_modal_values,
    sum_stocks,
    update_stock,
    validate_input_quantities,
)
from stockbot.notices import (
    Button,
    InteractionReply,
    Notice,
    adjustment_notice,
    auth_prompt_notice,
    auth_success_notice,
    awaiting_attachment_notice,
    decline_only_components,
    error_notice,
    panel_components,
    panel_notice,
    proof_choice_components,
    proof_pending_notice,
    stock_notice,
    stock_query_menu,
    transaction_log_notice,
    transaction_modal,
)
from stockbot.pending_proof_cache import PendingProof, PendingProofCache
from stockbot.query_store import QueryStore

logger = logging.getLogger("stockbot")

BTN_REGISTER_FARM = "btn_registro_farm"
BTN_PRODUCTION = "btn_producao"
BTN_STOCK_QUERY = "btn_consulta_estoque"
BTN_STOCK_OVERVIEW = "btn_visualizar_estoque"
BTN_ADJUSTMENT = "btn_ajuste_estoque"
BTN_LOG = "btn_log_gerencial"

RESTRICTED_ACTIONS = (BTN_ADJUSTMENT, BTN_LOG, BTN_PRODUCTION, BTN_STOCK_OVERVIEW)

MODAL_REGISTER_FARM = "modal_registro_farm"
MODAL_PRODUCTION = "modal_producao"
MODAL_ADJUSTMENT = "modal_ajuste"

SELECT_STOCK_QUERY = "select_consulta_estoque"

PROOF_PREFIX = "proof_"
OPEN_MODAL_PREFIX = "open_action_modal_"

FINALIZE_FAILED_TEXT = "A transação falhou no processamento final. O registro não foi concluído."


@dataclass
class BotContext:
    """
    Process-scoped state handed to the handlers. Nothing here is global.
    """
    store: QueryStore
    messenger: Messenger
    proofs: PendingProofCache
    auth: AuthGate
    notice_ttl_seconds: float = 5
    resolve_user_tag: Optional[Callable[[str], Optional[str]]] = None


def _reply_error(title: str, description: str, *, update_message: bool = False) -> InteractionReply:
    return InteractionReply(
        notices=[error_notice(title, description)],
        update_message=update_message,
    )


def reply_for_error(exc: StockbotError) -> InteractionReply:
    if isinstance(exc, ValidationError):
        return _reply_error("Dados Inválidos", "\n".join(exc.messages))
    if isinstance(exc, ConfigMissingError):
        return _reply_error("Configuração Faltando", f"Nenhum item encontrado para {exc.key}.")
    if isinstance(exc, SessionExpiredError):
        return _reply_error("Sessão Expirada", str(exc))
    if isinstance(exc, StoreError):
        return _reply_error("Erro no DB", str(exc))
    return _reply_error("Erro", str(exc))


class StockBot:
    def __init__(self, ctx: BotContext):
        self.ctx = ctx
        self.store = ctx.store
        self.messenger = ctx.messenger
        self.proofs = ctx.proofs
        self.auth = ctx.auth

        # restricted action id -> what runs once the master key checks out
        self.gated_actions: dict[str, Callable[[ChatMessage, str], Awaitable[None]]] = {
            BTN_LOG: self._action_show_log,
            BTN_ADJUSTMENT: self._action_grant_modal,
            BTN_PRODUCTION: self._action_grant_modal,
            BTN_STOCK_OVERVIEW: self._action_stock_overview,
        }

    # -----------------------
    # Entry points
    # -----------------------

    async def handle_panel_command(self, event: PanelCommand) -> InteractionReply:
        return await self._guarded(self._panel_command, event)

    async def handle_button(self, event: ButtonPress) -> InteractionReply:
        return await self._guarded(self._button, event)

    async def handle_select(self, event: SelectChoice) -> InteractionReply:
        return await self._guarded(self._select, event)

    async def handle_modal_submit(self, event: ModalSubmit) -> InteractionReply:
        return await self._guarded(self._modal_submit, event)

    async def handle_message(self, event: ChatMessage) -> None:
        if event.actor.is_bot:
            return

        action = self.auth.consume(event.actor.user_id)
        if action is not None:
            await self._auth_attempt(event, action)
            return

        if event.attachment_urls:
            await self._proof_attachment(event)

    @staticmethod
    def opens_modal(custom_id: str) -> bool:
        """
        Whether pressing `custom_id` may answer with a modal. A modal has to be
        the first response, so the gateway must not defer these presses.
        """
        return custom_id == BTN_REGISTER_FARM or custom_id.startswith(OPEN_MODAL_PREFIX)

    def sweep(self) -> int:
        removed = self.proofs.sweep_expired()
        if removed:
            logger.debug("PendingProofCache sweep: removed %d stale entries", removed)
        return removed

    async def _guarded(self, fn, event) -> InteractionReply:
        try:
            return await fn(event)
        except SessionExpiredError as e:
            logger.info("Expired session for %s: %s", event.actor.user_id, e)
            return reply_for_error(e)
        except StockbotError as e:
            logger.warning("%s for %s: %s", type(e).__name__, event.actor.user_id, e)
            return reply_for_error(e)

    # -----------------------
    # Panel
    # -----------------------

    async def _panel_command(self, event: PanelCommand) -> InteractionReply:
        actor = event.actor
        registered = await self.store.register_owner(actor.user_id, event.channel_id, actor.tag)
        if not registered:
            raise StoreError("Não foi possível registrar o dono e o canal no banco de dados.")

        sent = await self.messenger.send(
            event.channel_id,
            notices=[panel_notice(actor.tag, event.guild_icon_url)],
            components=panel_components(),
        )
        if sent is None:
            return _reply_error("Erro no Painel", "Não foi possível enviar o painel neste canal.")

        logger.info("Panel created for %s in channel %s", actor.user_id, event.channel_id)
        return InteractionReply(
            content="✅ Painel de Controle criado com sucesso no canal! Você foi registrado como o Dono deste estoque."
        )

    async def refresh_panel(self, channel_id: str, owner_tag: str | None, guild_icon_url: str | None = None) -> None:
        sent = await self.messenger.send(
            channel_id,
            notices=[panel_notice(owner_tag, guild_icon_url)],
            components=panel_components(),
        )
        if sent is None:
            logger.error("[PANEL] Failed to send refreshed panel to channel %s", channel_id)

    # -----------------------
    # Buttons
    # -----------------------

    async def _button(self, event: ButtonPress) -> InteractionReply:
        custom_id = event.custom_id

        if custom_id.startswith(PROOF_PREFIX):
            return await self._proof_choice(event)

        if custom_id.startswith(OPEN_MODAL_PREFIX):
            modal = self.auth.take_modal(event.actor.user_id)
            if modal is None:
                raise SessionExpiredError("A sessão para este modal expirou. Tente a ação gerencial novamente.")
            return InteractionReply(modal=modal, delete_message=True)

        if custom_id == BTN_STOCK_QUERY:
            manager = await self._is_manager(event.actor.role_ids)
            return InteractionReply(
                content="Escolha a opção de consulta:",
                components=[[stock_query_menu(include_general=manager)]],
            )

        owner = await self.store.get_owner(event.actor.user_id)
        if owner is None:
            return _reply_error(
                "Sem Painel",
                "Você não é o dono do Painel de Controle neste canal. Use `/painel` para criar o seu.",
            )

        if custom_id in RESTRICTED_ACTIONS:
            self.auth.request(event.actor.user_id, custom_id)
            logger.info("Auth requested by %s for %s", event.actor.user_id, custom_id)
            return InteractionReply(notices=[auth_prompt_notice(self.auth.timeout_seconds)])

        if custom_id == BTN_REGISTER_FARM:
            rules = await self._require_rules(ITEMS_FARM_KEY)
            return InteractionReply(
                modal=transaction_modal(MODAL_REGISTER_FARM, "REGISTRO DE ENTRADA FARM", rules)
            )

        logger.debug("Ignoring unknown button %s", custom_id)
        return InteractionReply(silent=True)

    async def _proof_choice(self, event: ButtonPress) -> InteractionReply:
        parts = event.custom_id.split("_")
        expired = SessionExpiredError("Esta sessão de prova expirou ou não pertence a você.")
        try:
            choice, transaction_id = parts[1], int(parts[2])
        except (IndexError, ValueError):
            raise expired

        if self.proofs.get_for_submitter(transaction_id, event.actor.user_id) is None:
            raise expired

        if choice == "yes":
            self.proofs.mark_awaiting_proof(transaction_id)
            return InteractionReply(
                notices=[awaiting_attachment_notice(transaction_id)],
                components=decline_only_components(transaction_id),
                update_message=True,
            )

        if choice != "no":
            raise expired

        # claimed before any await: a concurrent proof message now misses
        entry = self.proofs.pop(transaction_id)
        if entry is None:
            raise expired

        owner = await self.store.get_owner(entry.target_owner_id)
        if owner is None:
            raise StoreError("Dono do Painel não encontrado no DB.")

        result = await finalize_transaction(
            self.store,
            self.messenger,
            entry,
            STATUS_WITHOUT_PROOF,
            None,
            owner,
            event.actor,
            event.channel_id,
        )
        if result is None:
            return _reply_error("Erro Crítico", FINALIZE_FAILED_TEXT)

        await self.refresh_panel(result.channel_id, result.owner_display_name, event.guild_icon_url)
        return InteractionReply(content="Transação registrada com sucesso (SEM PROVA).", delete_message=True)

    # -----------------------
    # Stock query menu
    # -----------------------

    async def _select(self, event: SelectChoice) -> InteractionReply:
        if event.custom_id != SELECT_STOCK_QUERY or not event.values:
            return InteractionReply(silent=True)

        selection = event.values[0]

        if selection == "consulta_canal":
            owner = await self.store.get_owner(event.actor.user_id)
            if owner is None:
                return _reply_error("Erro de Dados", "Dono não encontrado no DB.", update_message=True)

            await self.refresh_panel(owner.channel_id, owner.display_name, event.guild_icon_url)
            return InteractionReply(
                notices=[stock_notice("CANAL", owner.farm_stock, event.actor.tag)],
                update_message=True,
            )

        if selection == "consulta_geral":
            if not await self._is_manager(event.actor.role_ids):
                return _reply_error(
                    "Acesso Negado",
                    "Você não tem permissão gerencial para esta consulta.",
                    update_message=True,
                )
            total = sum_stocks(await self.store.get_all_farm_stocks())
            return InteractionReply(notices=[stock_notice("GERAL", total)], update_message=True)

        return InteractionReply(silent=True)

    # -----------------------
    # Modals
    # -----------------------

    async def _modal_submit(self, event: ModalSubmit) -> InteractionReply:
        values = parse_modal_values(event.fields)

        if event.custom_id == MODAL_ADJUSTMENT:
            return await self._submit_adjustment(event, values)

        if event.custom_id in (MODAL_REGISTER_FARM, MODAL_PRODUCTION):
            return await self._submit_pending(event, values)

        logger.debug("Ignoring unknown modal %s", event.custom_id)
        return InteractionReply(silent=True)

    async def _submit_adjustment(self, event: ModalSubmit, values: dict) -> InteractionReply:
        if not values:
            return _reply_error("Dados Vazios", "Preencha pelo menos um item. Use valores negativos para subtrair.")

        owner = await self.store.get_owner(event.actor.user_id)
        if owner is None:
            return _reply_error("Erro de Dados", "Dono do Painel não encontrado no DB.")

        # signed values: negatives withdraw, and anything driven to zero disappears
        new_farm = update_stock(owner.farm_stock, values, 1)
        updated = await self.store.update_stock(owner.owner_id, new_farm, owner.production_stock)
        if not updated:
            return _reply_error("Erro no Ajuste", "Não foi possível atualizar o estoque no banco de dados.")

        transaction_id = await self.store.add_transaction(
            kind=KIND_ADJUST,
            executor_id=event.actor.user_id,
            target_owner_id=owner.owner_id,
            line_items=values,
            proof_status=STATUS_ADJUSTMENT,
        )
        if transaction_id is None:
            logger.error("Adjustment applied for %s but its log entry was not recorded", owner.owner_id)

        owner_tag = owner.display_name or event.actor.tag
        await self.messenger.send(
            event.channel_id,
            notices=[adjustment_notice(transaction_id, owner_tag, owner.owner_id, values)],
        )
        await self.refresh_panel(owner.channel_id, owner.display_name, event.guild_icon_url)
        return InteractionReply(silent=True)

    async def _submit_pending(self, event: ModalSubmit, values: dict) -> InteractionReply:
        owner = await self.store.get_owner(event.actor.user_id)
        if owner is None:
            return _reply_error("Erro Interno", "Dono do Painel não encontrado para registro.")

        if event.custom_id == MODAL_REGISTER_FARM:
            config_key, kind = ITEMS_FARM_KEY, KIND_REGISTER
        else:
            config_key, kind = ITEMS_PRODUCTION_KEY, KIND_PRODUCE

        rules = await self._require_rules(config_key)
        errors = validate_input_quantities(values, rules)
        if errors:
            raise ValidationError(errors)

        transaction_id = await self.store.add_transaction(
            kind=kind,
            executor_id=event.actor.user_id,
            target_owner_id=owner.owner_id,
            line_items=values,
            proof_status=STATUS_PENDING,
        )
        if transaction_id is None:
            return _reply_error("Erro no Log", "Não foi possível criar o registro da transação. Tente novamente.")

        entry = PendingProof(
            transaction_id=transaction_id,
            submitter_id=event.actor.user_id,
            target_owner_id=owner.owner_id,
            kind=kind,
            line_items=values,
        )
        self.proofs.add(entry)

        prompt_id = await self.messenger.send(
            event.channel_id,
            notices=[proof_pending_notice(transaction_id, kind, values)],
            components=proof_choice_components(transaction_id),
        )
        if prompt_id is None:
            self.proofs.pop(transaction_id)
            await self.store.update_transaction_status(transaction_id, STATUS_SEND_FAILED, None)
            return _reply_error(
                "Erro Interno",
                "Falha ao construir a mensagem de prova. Contate o administrador.",
            )

        entry.prompt_message_id = prompt_id
        entry.prompt_channel_id = event.channel_id
        logger.info("Transaction #%s (%s) pending proof for %s", transaction_id, kind, owner.owner_id)
        return InteractionReply(silent=True)

    # -----------------------
    # Chat messages
    # -----------------------

    async def _proof_attachment(self, event: ChatMessage) -> None:
        owner = await self.store.get_owner(event.actor.user_id)
        if owner is None or owner.channel_id != event.channel_id:
            return

        match = self.proofs.find_by_submitter(event.actor.user_id, owner.owner_id)
        if match is None:
            return

        proof_url = event.attachment_urls[0]
        # removed before finalizing so a duplicate message cannot finalize twice
        entry = self.proofs.pop(match.transaction_id)
        if entry is None:
            return

        result = await finalize_transaction(
            self.store,
            self.messenger,
            entry,
            STATUS_WITH_PROOF,
            proof_url,
            owner,
            event.actor,
            event.channel_id,
        )
        if result is None:
            await self.messenger.send(
                event.channel_id,
                notices=[error_notice("Erro Crítico", FINALIZE_FAILED_TEXT)],
            )
            return

        await self.refresh_panel(result.channel_id, result.owner_display_name, event.guild_icon_url)

        await self.messenger.delete(event.channel_id, event.message_id)
        if entry.prompt_message_id:
            await self.messenger.delete(entry.prompt_channel_id or event.channel_id, entry.prompt_message_id)

    async def _auth_attempt(self, event: ChatMessage, action: str) -> None:
        channel_id = event.channel_id
        master_key = await self.store.get_config(MASTER_KEY_KEY)

        # the secret never stays in the channel, right or wrong
        await self.messenger.delete(channel_id, event.message_id)

        if master_key is None:
            logger.error("Auth attempt by %s but %s is not configured", event.actor.user_id, MASTER_KEY_KEY)
            await self._short_notice(
                channel_id,
                error_notice("Configuração Faltando", "A chave de acesso gerencial não está configurada."),
            )
            return

        if not self.auth.check_secret(event.content, master_key.value):
            logger.info("Auth failed for %s (%s)", event.actor.user_id, action)
            await self._short_notice(channel_id, error_notice("Autenticação Falhou", "Chave de acesso incorreta."))
            return

        logger.info("Auth granted for %s (%s)", event.actor.user_id, action)
        await self._short_notice(channel_id, auth_success_notice())

        handler = self.gated_actions.get(action)
        if handler is None:
            logger.warning("No handler registered for restricted action %s", action)
            return

        try:
            await handler(event, action)
        except StockbotError as e:
            logger.warning("Restricted action %s failed: %s", action, e)
            await self.messenger.send(channel_id, notices=reply_for_error(e).notices)

    async def _short_notice(self, channel_id: str, notice: Notice) -> None:
        await self.messenger.send(channel_id, notices=[notice], delete_after=self.ctx.notice_ttl_seconds)

    # -----------------------
    # Restricted actions
    # -----------------------

    async def _action_show_log(self, event: ChatMessage, action: str) -> None:
        records = await self.store.list_transactions(None, 10)

        tags = {}
        if self.ctx.resolve_user_tag is not None:
            for record in records:
                for user_id in (record.target_owner_id, record.executor_id):
                    if user_id not in tags:
                        tags[user_id] = self.ctx.resolve_user_tag(user_id) or user_id

        await self.messenger.send(
            event.channel_id,
            content=f"**{event.actor.tag}**, Logs carregados:",
            notices=[transaction_log_notice(records, tags)],
        )

    async def _action_grant_modal(self, event: ChatMessage, action: str) -> None:
        if action == BTN_ADJUSTMENT:
            config_key, title, modal_id = ITEMS_FARM_KEY, "AJUSTE MANUAL DE ESTOQUE", MODAL_ADJUSTMENT
        else:
            config_key, title, modal_id = ITEMS_PRODUCTION_KEY, "REGISTRO DE PRODUÇÃO", MODAL_PRODUCTION

        rules = await self._require_rules(config_key)
        self.auth.grant_modal(event.actor.user_id, transaction_modal(modal_id, title, rules))

        label = f"Abrir Modal de {action.split('_')[-1].upper()}"
        await self.messenger.send(
            event.channel_id,
            content=(
                f"**{event.actor.tag}**, autenticação bem-sucedida! "
                "Clique no botão abaixo para abrir o modal de transação."
            ),
            components=[[Button(custom_id=f"{OPEN_MODAL_PREFIX}{modal_id}", label=label, style="primary")]],
        )

    async def _action_stock_overview(self, event: ChatMessage, action: str) -> None:
        owner = await self.store.get_owner(event.actor.user_id)
        if owner is None:
            raise StoreError("Dono não encontrado no DB.")

        tag = owner.display_name or event.actor.tag
        await self.messenger.send(
            event.channel_id,
            notices=[
                stock_notice("CANAL", owner.farm_stock, title=f"📦 ESTOQUE FARM ({tag})"),
                stock_notice("CANAL", owner.production_stock, title=f"🏭 ESTOQUE PRODUÇÃO ({tag})"),
            ],
        )

    # -----------------------
    # Helpers
    # -----------------------

    async def _require_rules(self, key: str) -> list[ItemRule]:
        rules = await self.store.get_config(key)
        if not rules:
            raise ConfigMissingError(key)
        return rules

    async def _is_manager(self, role_ids: list[str]) -> bool:
        roles = await self.store.get_config(MANAGER_ROLES_KEY)
        return is_manager(role_ids, roles.ids if roles is not None else [])
