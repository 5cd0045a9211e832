# stockbot/events.py
"""
Inbound events as the handlers see them, already stripped of gateway types,
plus the outbound messaging surface the handlers talk to.
"""

from typing import Optional, Protocol

from pydantic import BaseModel, Field

from stockbot.notices import ComponentRow, Notice


class Actor(BaseModel):
    user_id: str
    tag: str
    avatar_url: Optional[str] = None
    role_ids: list[str] = Field(default_factory=list)
    is_bot: bool = False


class PanelCommand(BaseModel):
    actor: Actor
    channel_id: str
    guild_icon_url: Optional[str] = None


class ButtonPress(BaseModel):
    actor: Actor
    channel_id: str
    custom_id: str
    message_id: Optional[str] = None
    guild_icon_url: Optional[str] = None


class SelectChoice(BaseModel):
    actor: Actor
    channel_id: str
    custom_id: str
    values: list[str] = Field(default_factory=list)
    guild_icon_url: Optional[str] = None


class ModalSubmit(BaseModel):
    actor: Actor
    channel_id: str
    custom_id: str
    fields: dict[str, str] = Field(default_factory=dict)
    guild_icon_url: Optional[str] = None


class ChatMessage(BaseModel):
    actor: Actor
    channel_id: str
    message_id: str
    content: str = ""
    attachment_urls: list[str] = Field(default_factory=list)
    guild_icon_url: Optional[str] = None


class Messenger(Protocol):
    async def send(
        self,
        channel_id: str,
        *,
        content: str | None = None,
        notices: list[Notice] | None = None,
        components: list[ComponentRow] | None = None,
        delete_after: float | None = None,
    ) -> str | None:
        """
        Post a message; returns its id, or None when the send failed.
        """
        ...

    async def delete(self, channel_id: str, message_id: str) -> bool:
        ...
