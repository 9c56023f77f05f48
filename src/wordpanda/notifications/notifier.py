"""Fan a message out to every channel a subscriber has configured."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from wordpanda.config import Settings
from wordpanda.notifications.channels import (
    EmailChannel,
    GoogleChatChannel,
    Message,
    NotificationChannel,
    TelegramChannel,
)
from wordpanda.notifications.email import create_email_provider
from wordpanda.subscribers.settings import Recipient

logger = logging.getLogger(__name__)


@dataclass
class ChannelReport:
    email_sent: bool = False
    telegram_sent: bool = False
    gchat_sent: bool = False

    @property
    def any_sent(self) -> bool:
        return self.email_sent or self.telegram_sent or self.gchat_sent


_REPORT_FIELDS = {
    "email": "email_sent",
    "telegram": "telegram_sent",
    "google_chat": "gchat_sent",
}


class Notifier:
    """Sends through each configured channel in turn.

    A channel that raises or exceeds ``timeout`` is reported as not sent;
    the remaining channels still run.
    """

    def __init__(self, channels: Sequence[NotificationChannel], timeout: float = 10.0) -> None:
        self.channels = list(channels)
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> Notifier:
        return cls(
            channels=[
                EmailChannel(create_email_provider()),
                TelegramChannel(settings.telegram_bot_token),
                GoogleChatChannel(
                    webhook_prefix=settings.google_chat_webhook_prefix,
                    timeout=settings.http_timeout_seconds,
                ),
            ],
            timeout=settings.http_timeout_seconds,
        )

    async def _send_one(self, channel: NotificationChannel, recipient: Recipient, message: Message) -> bool:
        try:
            return bool(await asyncio.wait_for(channel.send(recipient, message), timeout=self.timeout))
        except asyncio.TimeoutError:
            logger.warning("%s send to %s timed out after %.1fs", channel.name, recipient.email, self.timeout)
        except Exception:
            logger.exception("%s send to %s failed", channel.name, recipient.email)
        return False

    async def notify(self, recipient: Recipient, message: Message) -> ChannelReport:
        report = ChannelReport()
        for channel in self.channels:
            if not channel.is_configured(recipient.settings):
                continue
            sent = await self._send_one(channel, recipient, message)
            field_name = _REPORT_FIELDS.get(channel.name)
            if field_name:
                setattr(report, field_name, sent)
        return report
