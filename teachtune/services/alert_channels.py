# teachtune/services/alert_channels.py
from __future__ import annotations

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from collections import deque
from email.message import EmailMessage
from typing import Deque, Dict, List, Optional, Set

import httpx

from teachtune.core.config import Settings
from teachtune.core.errors import DeliveryFailure
from teachtune.schemas.alert import LessonAlert

logger = logging.getLogger(__name__)


class AlertChannel(ABC):
    """
    One delivery surface for lesson alerts.

    Implementations raise DeliveryFailure when the alert could not be
    delivered; they never need to handle retries themselves.
    """

    name = "channel"

    @abstractmethod
    async def deliver(self, alert: LessonAlert) -> None:
        ...


class InAppAlertFeed:
    """
    Bounded, per-teacher list of the most recent alerts, served by GET /alerts.

    Lives in process memory only and is emptied on restart.
    """

    def __init__(self, max_size: int = 50) -> None:
        self._max_size = max_size
        self._alerts: Dict[str, Deque[LessonAlert]] = {}

    def push(self, alert: LessonAlert) -> None:
        feed = self._alerts.setdefault(alert.teacher_id, deque(maxlen=self._max_size))
        feed.appendleft(alert)

    def recent(self, teacher_id: str, limit: Optional[int] = None) -> List[LessonAlert]:
        """Most recent alerts first."""
        alerts = list(self._alerts.get(teacher_id, ()))
        if limit is not None:
            alerts = alerts[:limit]
        return alerts

    def clear(self) -> None:
        self._alerts.clear()


class InAppChannel(AlertChannel):
    """
    Visual in-app channel. It is the primary channel: an alert counts as
    delivered once it reached this feed.
    """

    name = "in_app"

    def __init__(self, feed: InAppAlertFeed) -> None:
        self.feed = feed

    async def deliver(self, alert: LessonAlert) -> None:
        self.feed.push(alert)


class WebhookChannel(AlertChannel):
    """
    POSTs every alert as JSON to a configured URL.

    The dedupe key is sent as an `Idempotency-Key` header so receivers can
    drop repeated deliveries.
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not url:
            raise ValueError("url is required")
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def deliver(self, alert: LessonAlert) -> None:
        headers = {
            "Content-Type": "application/json",
            "Idempotency-Key": alert.dedupe_key,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.post(
                    self._url,
                    json=alert.model_dump(mode="json"),
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            raise DeliveryFailure(f"Webhook delivery failed: {exc}") from exc

        if resp.status_code // 100 != 2:
            raise DeliveryFailure(
                f"Webhook delivery failed (status={resp.status_code}): {resp.text}"
            )


def _parse_recipients(recipients: str | None) -> List[str]:
    if not recipients:
        return []
    return [r.strip() for r in recipients.split(",") if r.strip()]


def build_alert_email_body(alert: LessonAlert) -> str:
    """
    Build a short plain-text body for a lesson alert email.
    """
    lines: list[str] = [
        alert.message,
        "",
        f"Student: {alert.student_name}",
        f"Starts at: {alert.scheduled_at.isoformat()}",
        "",
        "Regards,",
        "TeachTune",
    ]
    return "\n".join(lines)


class EmailChannel(AlertChannel):
    """
    Sends alerts via SMTP to ALERT_EMAIL_RECIPIENTS.

    smtplib is blocking, so the send runs in a worker thread to keep the
    scan loop responsive.
    """

    name = "email"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.recipients = _parse_recipients(settings.ALERT_EMAIL_RECIPIENTS)

    @property
    def configured(self) -> bool:
        return bool(
            self.recipients and self.settings.SMTP_HOST and self.settings.SMTP_FROM_ADDRESS
        )

    def _build_message(self, alert: LessonAlert) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = f"[{self.settings.APP_NAME}] {alert.message}"
        msg["From"] = self.settings.SMTP_FROM_ADDRESS
        msg["To"] = ", ".join(self.recipients)
        msg.set_content(build_alert_email_body(alert))
        return msg

    def _send(self, msg: EmailMessage) -> None:
        settings = self.settings
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(msg)

    async def deliver(self, alert: LessonAlert) -> None:
        if not self.configured:
            raise DeliveryFailure("Email channel is not configured.")

        msg = self._build_message(alert)
        try:
            await asyncio.to_thread(self._send, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryFailure(f"Email delivery failed: {exc}") from exc


class AlertDispatcher:
    """
    Fans an alert out to the primary channel and every secondary channel.

    Delivery is best effort: failures are logged and never raised. The
    return value tells whether the primary (in-app) channel accepted the
    alert, which is what the monitor uses to mark a lesson as notified.

    Secondary channels talk to the network, so `emit` only starts them as
    background tasks and returns once the primary delivery is done.
    `drain()` waits for whatever is still in flight.
    """

    def __init__(
        self,
        primary: AlertChannel,
        secondary: Optional[List[AlertChannel]] = None,
    ) -> None:
        self.primary = primary
        self.secondary = list(secondary or [])
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def emit(self, alert: LessonAlert) -> bool:
        try:
            await self.primary.deliver(alert)
        except Exception:
            logger.exception(
                "Primary alert channel %s failed for lesson %s",
                self.primary.name,
                alert.dedupe_key,
            )
            return False

        for channel in self.secondary:
            task = asyncio.create_task(
                self._deliver_secondary(channel, alert),
                name=f"teachtune-alert-{channel.name}",
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        return True

    async def _deliver_secondary(self, channel: AlertChannel, alert: LessonAlert) -> None:
        try:
            await channel.deliver(alert)
        except DeliveryFailure as exc:
            logger.warning(
                "Alert channel %s could not deliver lesson %s: %s",
                channel.name,
                alert.dedupe_key,
                exc,
            )
        except Exception:
            logger.exception(
                "Alert channel %s crashed for lesson %s",
                channel.name,
                alert.dedupe_key,
            )

    async def drain(self) -> None:
        """Wait until every started secondary delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


def build_dispatcher(settings: Settings, feed: InAppAlertFeed) -> AlertDispatcher:
    """
    Wire the in-app feed plus whichever optional channels are configured.
    """
    secondary: list[AlertChannel] = []

    if settings.ALERT_WEBHOOK_URL:
        secondary.append(
            WebhookChannel(
                url=str(settings.ALERT_WEBHOOK_URL),
                timeout_seconds=settings.ALERT_WEBHOOK_TIMEOUT_SECONDS,
            )
        )

    email_channel = EmailChannel(settings)
    if email_channel.configured:
        secondary.append(email_channel)

    return AlertDispatcher(primary=InAppChannel(feed), secondary=secondary)
