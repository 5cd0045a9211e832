# stockbot/discord_gateway.py
"""
discord.py adapter: turns gateway interactions and messages into the plain
events the handlers take, and renders their replies back into embeds,
views and modals.
"""

import asyncio
import logging
from typing import Optional

import discord
from discord import app_commands

from stockbot.auth_gate import AuthGate
from stockbot.events import (
    Actor,
    ButtonPress,
    ChatMessage,
    ModalSubmit,
    PanelCommand,
    SelectChoice,
)
from stockbot.handlers import BotContext, StockBot
from stockbot.notices import (
    COLOR_ERROR,
    COLOR_INFO,
    COLOR_PANEL,
    COLOR_SUCCESS,
    COLOR_WARNING,
    Button,
    ComponentRow,
    InteractionReply,
    ModalForm,
    Notice,
    SelectMenu,
    error_notice,
)
from stockbot.pending_proof_cache import PendingProofCache
from stockbot.query_store import QueryStore

logger = logging.getLogger("stockbot")

SWEEP_INTERVAL_SECONDS = 60
VIEW_TIMEOUT_SECONDS = 180
MODAL_TIMEOUT_SECONDS = 600

EMBED_COLORS = {
    COLOR_SUCCESS: discord.Color.from_str("#5cb85c"),
    COLOR_ERROR: discord.Color.from_str("#d9534f"),
    COLOR_WARNING: discord.Color.from_str("#f0ad4e"),
    COLOR_INFO: discord.Color.from_str("#2980b9"),
    COLOR_PANEL: discord.Color.from_str("#0099ff"),
}

BUTTON_STYLES = {
    "primary": discord.ButtonStyle.primary,
    "secondary": discord.ButtonStyle.secondary,
    "success": discord.ButtonStyle.success,
    "danger": discord.ButtonStyle.danger,
}


# -----------------------
# Rendering
# -----------------------

def render_notice(notice: Notice) -> discord.Embed:
    embed = discord.Embed(
        title=notice.title,
        description=notice.description,
        color=EMBED_COLORS.get(notice.color, EMBED_COLORS[COLOR_INFO]),
        timestamp=notice.timestamp,
    )
    for f in notice.fields:
        embed.add_field(name=f.name, value=f.value, inline=f.inline)
    if notice.footer:
        embed.set_footer(text=notice.footer, icon_url=notice.footer_icon_url)
    if notice.thumbnail_url:
        embed.set_thumbnail(url=notice.thumbnail_url)
    return embed


def render_view(rows: list[ComponentRow]) -> Optional[discord.ui.View]:
    """
    Controls carry only custom ids; clicks are routed through on_interaction,
    so panels posted before a restart keep working.

    The view only lives in discord.py's view store until VIEW_TIMEOUT_SECONDS;
    after that the controls stay on the message and keep dispatching.
    """
    if not rows:
        return None
    view = discord.ui.View(timeout=VIEW_TIMEOUT_SECONDS)
    for row_index, row in enumerate(rows):
        for control in row:
            if isinstance(control, Button):
                view.add_item(
                    discord.ui.Button(
                        custom_id=control.custom_id,
                        label=control.label,
                        style=BUTTON_STYLES.get(control.style, discord.ButtonStyle.secondary),
                        row=row_index,
                    )
                )
            elif isinstance(control, SelectMenu):
                view.add_item(
                    discord.ui.Select(
                        custom_id=control.custom_id,
                        placeholder=control.placeholder,
                        options=[
                            discord.SelectOption(label=o.label, value=o.value, description=o.description)
                            for o in control.options
                        ],
                        row=row_index,
                    )
                )
    return view


def _message_kwargs(reply: InteractionReply) -> dict:
    kwargs = {"ephemeral": reply.ephemeral}
    if reply.content:
        kwargs["content"] = reply.content
    if reply.notices:
        kwargs["embeds"] = [render_notice(n) for n in reply.notices]
    view = render_view(reply.components)
    if view is not None:
        kwargs["view"] = view
    return kwargs


class FormModal(discord.ui.Modal):
    def __init__(self, form: ModalForm, gateway: "StockbotClient"):
        super().__init__(title=form.title, custom_id=form.custom_id, timeout=MODAL_TIMEOUT_SECONDS)
        self.gateway = gateway
        for text_input in form.inputs:
            self.add_item(
                discord.ui.TextInput(
                    custom_id=text_input.custom_id,
                    label=text_input.label,
                    placeholder=text_input.placeholder,
                    required=text_input.required,
                )
            )

    async def on_submit(self, interaction: discord.Interaction) -> None:
        # the source message may already be gone, so answer with a fresh ephemeral
        await interaction.response.defer(ephemeral=True, thinking=True)
        fields = {
            child.custom_id: child.value or ""
            for child in self.children
            if isinstance(child, discord.ui.TextInput)
        }
        event = ModalSubmit(
            actor=actor_from_user(interaction.user),
            channel_id=str(interaction.channel_id),
            custom_id=self.custom_id,
            fields=fields,
            guild_icon_url=guild_icon_url(interaction.guild),
        )
        reply = await self.gateway.bot.handle_modal_submit(event)
        await self.gateway.apply_reply(interaction, reply, thinking=True)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        logger.error("Modal %s failed", self.custom_id, exc_info=error)
        await self.gateway.report_failure(interaction)


def actor_from_user(user) -> Actor:
    roles = getattr(user, "roles", None) or []
    return Actor(
        user_id=str(user.id),
        tag=str(user),
        avatar_url=user.display_avatar.url,
        role_ids=[str(r.id) for r in roles],
        is_bot=user.bot,
    )


def guild_icon_url(guild) -> Optional[str]:
    if guild is not None and guild.icon is not None:
        return guild.icon.url
    return None


# -----------------------
# Outbound messaging
# -----------------------

class DiscordMessenger:
    def __init__(self, client: discord.Client):
        self.client = client

    async def _channel(self, channel_id: str):
        channel = self.client.get_channel(int(channel_id))
        if channel is None:
            channel = await self.client.fetch_channel(int(channel_id))
        return channel

    async def send(self, channel_id, *, content=None, notices=None, components=None, delete_after=None):
        kwargs = {}
        if content:
            kwargs["content"] = content
        if notices:
            kwargs["embeds"] = [render_notice(n) for n in notices]
        view = render_view(components or [])
        if view is not None:
            kwargs["view"] = view
        if delete_after:
            kwargs["delete_after"] = delete_after

        try:
            channel = await self._channel(channel_id)
            message = await channel.send(**kwargs)
            return str(message.id)
        except (discord.HTTPException, ValueError) as e:
            logger.error("Failed to send message to channel %s: %s", channel_id, e)
            return None

    async def delete(self, channel_id, message_id) -> bool:
        try:
            channel = await self._channel(channel_id)
            await channel.get_partial_message(int(message_id)).delete()
            return True
        except (discord.HTTPException, ValueError) as e:
            logger.debug("Could not delete message %s: %s", message_id, e)
            return False


# -----------------------
# Client
# -----------------------

class StockbotClient(discord.Client):
    def __init__(
        self,
        store: QueryStore,
        proofs: PendingProofCache,
        auth: AuthGate,
        guild_id: Optional[str] = None,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        super().__init__(intents=intents)

        self.guild_id = guild_id
        self.tree = app_commands.CommandTree(self)
        self.messenger = DiscordMessenger(self)
        self.bot = StockBot(
            BotContext(
                store=store,
                messenger=self.messenger,
                proofs=proofs,
                auth=auth,
                resolve_user_tag=self.resolve_user_tag,
            )
        )
        self._sweep_task: Optional[asyncio.Task] = None

        @self.tree.command(name="painel", description="Cria o Painel de Controle de estoque neste canal.")
        @app_commands.default_permissions(manage_channels=True)
        @app_commands.guild_only()
        async def painel(interaction: discord.Interaction):
            await interaction.response.defer(ephemeral=True, thinking=True)
            event = PanelCommand(
                actor=actor_from_user(interaction.user),
                channel_id=str(interaction.channel_id),
                guild_icon_url=guild_icon_url(interaction.guild),
            )
            reply = await self.bot.handle_panel_command(event)
            await self.apply_reply(interaction, reply, thinking=True)

        @self.tree.error
        async def on_tree_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
            logger.error("Slash command failed", exc_info=error)
            await self.report_failure(interaction)

    async def setup_hook(self) -> None:
        if self.guild_id:
            guild = discord.Object(id=int(self.guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
        else:
            synced = await self.tree.sync()
        logger.info("Synced %d application command(s)", len(synced))

        self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def _sweep_loop(self) -> None:
        while not self.is_closed():
            await asyncio.sleep(SWEEP_INTERVAL_SECONDS)
            self.bot.sweep()

    async def close(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
        await super().close()

    async def on_ready(self) -> None:
        logger.info("Logged in as %s (%s)", self.user, self.user.id if self.user else "?")

    def resolve_user_tag(self, user_id: str) -> Optional[str]:
        try:
            user = self.get_user(int(user_id))
        except ValueError:
            return None
        return str(user) if user is not None else None

    # -----------------------
    # Inbound
    # -----------------------

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        # slash commands go through the tree; modal submits through FormModal
        if interaction.type is not discord.InteractionType.component:
            return

        data = interaction.data or {}
        custom_id = data.get("custom_id", "")
        actor = actor_from_user(interaction.user)
        channel_id = str(interaction.channel_id)
        icon = guild_icon_url(interaction.guild)
        is_select = data.get("component_type") == discord.ComponentType.select.value

        try:
            # acknowledge within the 3 s window; the handler's reply follows up
            if is_select or not self.bot.opens_modal(custom_id):
                await interaction.response.defer()

            if is_select:
                reply = await self.bot.handle_select(
                    SelectChoice(
                        actor=actor,
                        channel_id=channel_id,
                        custom_id=custom_id,
                        values=list(data.get("values", [])),
                        guild_icon_url=icon,
                    )
                )
            else:
                reply = await self.bot.handle_button(
                    ButtonPress(
                        actor=actor,
                        channel_id=channel_id,
                        custom_id=custom_id,
                        message_id=str(interaction.message.id) if interaction.message else None,
                        guild_icon_url=icon,
                    )
                )
            await self.apply_reply(interaction, reply)
        except Exception:
            logger.exception("Interaction %s from %s failed", custom_id, actor.user_id)
            await self.report_failure(interaction)

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return

        event = ChatMessage(
            actor=actor_from_user(message.author),
            channel_id=str(message.channel.id),
            message_id=str(message.id),
            content=message.content or "",
            attachment_urls=[a.url for a in message.attachments],
            guild_icon_url=guild_icon_url(message.guild),
        )
        try:
            await self.bot.handle_message(event)
        except Exception:
            logger.exception("Message handling failed for %s", event.actor.user_id)

    # -----------------------
    # Replies
    # -----------------------

    async def apply_reply(
        self,
        interaction: discord.Interaction,
        reply: InteractionReply,
        thinking: bool = False,
    ) -> None:
        """
        Deliver a handler reply. Works both on a fresh interaction and on one
        the gateway already deferred (`thinking` marks a deferred
        "bot is thinking" placeholder, which a silent reply removes).
        """
        if interaction.response.is_done():
            await self._deliver_followup(interaction, reply, thinking)
        else:
            await self._deliver_response(interaction, reply)

        if reply.delete_message and interaction.message is not None:
            try:
                await interaction.message.delete()
            except discord.HTTPException as e:
                logger.debug("Could not delete source message: %s", e)

    async def _deliver_response(self, interaction: discord.Interaction, reply: InteractionReply) -> None:
        if reply.modal is not None:
            await interaction.response.send_modal(FormModal(reply.modal, self))
        elif reply.silent:
            await interaction.response.defer()
        elif reply.update_message:
            await interaction.response.edit_message(
                content=reply.content,
                embeds=[render_notice(n) for n in reply.notices],
                view=render_view(reply.components),
            )
        else:
            await interaction.response.send_message(**_message_kwargs(reply))

    async def _deliver_followup(
        self,
        interaction: discord.Interaction,
        reply: InteractionReply,
        thinking: bool,
    ) -> None:
        if reply.modal is not None:
            logger.error("Modal %s cannot follow a deferred interaction", reply.modal.custom_id)
            await self.report_failure(interaction)
        elif reply.silent:
            if thinking:
                try:
                    await interaction.delete_original_response()
                except discord.HTTPException as e:
                    logger.debug("Could not remove deferred placeholder: %s", e)
        elif reply.update_message and not thinking:
            await interaction.edit_original_response(
                content=reply.content,
                embeds=[render_notice(n) for n in reply.notices],
                view=render_view(reply.components),
            )
        else:
            await interaction.followup.send(**_message_kwargs(reply))

    async def report_failure(self, interaction: discord.Interaction) -> None:
        embed = render_notice(
            error_notice("Erro ao Executar Comando", "Houve um erro interno ao processar sua solicitação.")
        )
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.debug("Could not report failure to user: %s", e)
