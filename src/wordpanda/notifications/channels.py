"""Notification channels: email, Telegram and Google Chat.

Each channel answers two questions: is it usable for this subscriber, and
did the provider accept the message. Channels never raise out of ``send``
for provider-side failures; the notifier additionally guards against
unexpected exceptions and timeouts.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx
from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup

from wordpanda.notifications.email import BaseEmailProvider
from wordpanda.subscribers.settings import (
    GOOGLE_CHAT_WEBHOOK_PREFIX,
    ChannelSettings,
    Recipient,
    email_configured,
    google_chat_configured,
    telegram_configured,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Button:
    text: str
    url: str


@dataclass(frozen=True)
class Message:
    """One notification rendered for every channel."""

    subject: str
    html: str
    text: str
    telegram_text: str
    chat_text: str
    buttons: tuple[Button, ...] = ()
    card_id: str = "wordpanda"
    card_title: str = "🐼 옛설판다"
    card_subtitle: str = ""


class NotificationChannel(ABC):
    """A delivery transport addressed through a subscriber's settings."""

    name: str

    @abstractmethod
    def is_configured(self, settings: ChannelSettings) -> bool: ...

    @abstractmethod
    async def send(self, recipient: Recipient, message: Message) -> bool:
        """Deliver ``message``. True only if the provider accepted it."""
        ...


class EmailChannel(NotificationChannel):
    name = "email"

    def __init__(self, provider: BaseEmailProvider) -> None:
        self.provider = provider

    def is_configured(self, settings: ChannelSettings) -> bool:
        return email_configured(settings)

    async def send(self, recipient: Recipient, message: Message) -> bool:
        return await self.provider.send(
            to_email=recipient.email,
            subject=message.subject,
            html_body=message.html,
            text_body=message.text,
        )


class TelegramChannel(NotificationChannel):
    """Telegram Bot API with HTML parse mode and URL buttons."""

    name = "telegram"

    def __init__(self, bot_token: str, bot: Bot | None = None) -> None:
        self.bot_token = bot_token
        self._bot = bot

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            self._bot = Bot(token=self.bot_token)
        return self._bot

    def is_configured(self, settings: ChannelSettings) -> bool:
        return telegram_configured(settings)

    async def send(self, recipient: Recipient, message: Message) -> bool:
        chat_id = recipient.settings.telegram_chat_id
        if not self.bot_token or not chat_id:
            return False

        reply_markup = None
        if message.buttons:
            reply_markup = InlineKeyboardMarkup(
                [[InlineKeyboardButton(text=b.text, url=b.url) for b in message.buttons]]
            )
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=message.telegram_text,
                parse_mode="HTML",
                reply_markup=reply_markup,
            )
        except Exception:
            logger.warning("Telegram send failed for %s", recipient.email, exc_info=True)
            return False
        return True


def google_chat_payload(message: Message) -> dict[str, Any]:
    """Plain ``{text}`` or, with buttons, a cardsV2 card with a button list."""
    if not message.buttons:
        return {"text": message.chat_text}
    return {
        "cardsV2": [
            {
                "cardId": message.card_id,
                "card": {
                    "header": {"title": message.card_title, "subtitle": message.card_subtitle},
                    "sections": [
                        {
                            "widgets": [
                                {"textParagraph": {"text": message.chat_text}},
                                {
                                    "buttonList": {
                                        "buttons": [
                                            {"text": b.text, "onClick": {"openLink": {"url": b.url}}}
                                            for b in message.buttons
                                        ]
                                    }
                                },
                            ]
                        }
                    ],
                },
            }
        ]
    }


class GoogleChatChannel(NotificationChannel):
    """Incoming-webhook delivery to a Google Chat space."""

    name = "google_chat"

    def __init__(
        self,
        webhook_prefix: str = GOOGLE_CHAT_WEBHOOK_PREFIX,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.webhook_prefix = webhook_prefix
        self.timeout = timeout
        self.transport = transport

    def is_configured(self, settings: ChannelSettings) -> bool:
        return google_chat_configured(settings, self.webhook_prefix)

    async def send(self, recipient: Recipient, message: Message) -> bool:
        webhook = recipient.settings.google_chat_webhook
        if not webhook or not webhook.startswith(self.webhook_prefix):
            return False
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(webhook, json=google_chat_payload(message))
        except httpx.HTTPError:
            logger.warning("Google Chat send failed for %s", recipient.email, exc_info=True)
            return False
        if response.is_success:
            return True
        logger.warning("Google Chat rejected message for %s: HTTP %d", recipient.email, response.status_code)
        return False
