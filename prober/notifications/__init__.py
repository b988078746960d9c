"""Alert delivery: Slack and Discord webhooks, or just the log.

A notifier's ``alert`` returns True when the alert got out. The probe only
resets its badness on True, so a failed delivery is retried on the next
qualifying cycle.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from prober.config import Settings, settings
from prober.health.outcome import Record

logger = logging.getLogger(__name__)

# Most recent failures quoted in an alert
_MAX_QUOTED_FAILURES = 5


def format_alert(name: str, description: str, badness: int, records: list[Record]) -> str:
    """Render the alert text shared by all channels."""
    text = (
        f"🔴 *Probe Alert*\n"
        f"Probe: `{name}` ({description})\n"
        f"Badness: *{badness}*\n"
    )
    failures = [r for r in reversed(records) if not r.outcome.passed][:_MAX_QUOTED_FAILURES]
    if failures:
        text += "Recent failures:\n"
        for r in failures:
            text += f"• {r.time_millis}: {r.outcome.error or r.outcome.info}\n"
    return text


class LogNotifier:
    """Writes alerts to the log. Always succeeds."""

    async def alert(
        self, name: str, description: str, badness: int, records: list[Record],
    ) -> bool:
        logger.warning("ALERT %s", format_alert(name, description, badness, records))
        return True


class WebhookNotifier:
    """Posts alerts to Slack and/or Discord incoming webhooks."""

    def __init__(
        self,
        slack_webhook: str = "",
        discord_webhook: str = "",
        timeout: float = 10,
    ) -> None:
        self.slack_webhook = slack_webhook
        self.discord_webhook = discord_webhook
        self.timeout = timeout

    @property
    def is_enabled(self) -> bool:
        return bool(self.slack_webhook or self.discord_webhook)

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self.is_enabled,
            "slack_configured": bool(self.slack_webhook),
            "discord_configured": bool(self.discord_webhook),
        }

    async def alert(
        self, name: str, description: str, badness: int, records: list[Record],
    ) -> bool:
        """Send to every configured channel. True if any of them accepted it."""
        if not self.is_enabled:
            logger.warning("No alert webhook configured, cannot alert for %s", name)
            return False

        text = format_alert(name, description, badness, records)
        sends = []
        if self.slack_webhook:
            sends.append(self._post(self.slack_webhook, {"text": text, "mrkdwn": True}, "Slack"))
        if self.discord_webhook:
            sends.append(self._post(self.discord_webhook, {"content": text}, "Discord"))
        results = await asyncio.gather(*sends)
        return any(results)

    async def _post(self, url: str, payload: dict[str, Any], channel: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("%s webhook failed: %s", channel, exc)
            return False
        if resp.status_code not in (200, 204):
            logger.warning("%s webhook returned %d: %s", channel, resp.status_code, resp.text[:200])
            return False
        return True


def get_notifier(config: Settings | None = None) -> WebhookNotifier | LogNotifier:
    """Webhook notifier when a webhook is configured, else the log notifier."""
    config = config or settings
    notifier = WebhookNotifier(
        slack_webhook=config.slack_webhook_url,
        discord_webhook=config.discord_webhook_url,
    )
    if notifier.is_enabled:
        return notifier
    logger.info("No alert webhook configured, alerts go to the log")
    return LogNotifier()
