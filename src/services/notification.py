"""E-mail notifications sent through the Resend HTTP API."""
from __future__ import annotations

import time
from dataclasses import dataclass
from html import escape
from typing import Any, Dict, Iterable, Optional

import httpx
from sqlalchemy.orm import sessionmaker

from core.config import Settings, get_settings
from core.db import session_scope
from core.exceptions import (
    EmailDeliveryError,
    ExternalServiceError,
    RateLimitError,
    ServiceUnavailableError,
)
from core.logging_config import get_logger, log_external_call
from domain.ingestion import IngestionResult
from domain.subscriptions import Subscriber, SubscriptionService

from .retry import transient_retrying

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class NotificationResult:
    """Counts for one fan-out."""

    sent: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"sent": self.sent, "failed": self.failed}


# =============================================================================
# Templates
# =============================================================================


def _layout(content: str, frontend_url: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        "<body style=\"font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; "
        "background-color: #f8fafc; padding: 20px;\">"
        "<div style=\"max-width: 560px; margin: 0 auto; background: white; "
        "border-radius: 12px; padding: 32px;\">"
        f"{content}"
        "<hr style=\"border: none; border-top: 1px solid #e2e8f0; margin: 32px 0 16px;\">"
        "<p style=\"color: #94a3b8; font-size: 12px; text-align: center;\">"
        "InmoCapt &mdash; Listados FSBO para agentes inmobiliarios<br>"
        f"<a href=\"{frontend_url}/app/account\" style=\"color: #94a3b8;\">"
        "Gestionar preferencias de notificación</a></p>"
        "</div></body></html>"
    )


def _button(text: str, href: str) -> str:
    return (
        f"<a href=\"{href}\" style=\"display: inline-block; background-color: #3BB273; "
        "color: white; text-decoration: none; padding: 12px 24px; border-radius: 8px;\">"
        f"{text}</a>"
    )


class EmailNotifier:
    """
    Sends transactional e-mail.

    With ``DRY_RUN`` on, messages are logged instead of sent. Without a
    Resend key, sends are skipped and reported as failed.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.Client] = None,
        retry_wait: float = 1.0,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self.retry_wait = retry_wait

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.email_timeout_seconds)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _post(self, body: Dict[str, Any]) -> httpx.Response:
        response = self.client.post(
            self.settings.resend_api_url,
            json=body,
            headers={"Authorization": f"Bearer {self.settings.resend_api_key}"},
        )
        if response.status_code == 429:
            raise RateLimitError("Resend rate limit reached")
        if response.status_code >= 500:
            raise ServiceUnavailableError(f"Resend returned {response.status_code}")
        if response.status_code >= 400:
            raise EmailDeliveryError(f"Resend rejected message: {response.status_code} {response.text}")
        return response

    def send_email(self, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        """
        Send one e-mail.

        Returns:
            True if sent (or logged in dry-run mode), False otherwise.
        """
        if self.settings.dry_run:
            LOGGER.info(f"[DRY RUN] E-mail to {to}: {subject}")
            return True

        if not self.settings.is_email_enabled():
            LOGGER.warning(f"RESEND_API_KEY not configured, skipping e-mail: {subject}")
            return False

        body: Dict[str, Any] = {
            "from": self.settings.email_from,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            body["text"] = text

        start = time.perf_counter()
        try:
            for attempt in transient_retrying(
                max_attempts=self.settings.email_max_retries,
                min_wait=self.retry_wait,
                max_wait=self.retry_wait * 10,
            ):
                with attempt:
                    self._post(body)
        except (ExternalServiceError, httpx.HTTPError) as exc:
            log_external_call(
                LOGGER, "resend", "send_email", False,
                (time.perf_counter() - start) * 1000, error=str(exc),
            )
            return False

        log_external_call(LOGGER, "resend", "send_email", True, (time.perf_counter() - start) * 1000)
        return True

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def send_list_updated_email(self, to: str, list_name: str, new_count: int, list_id: str) -> bool:
        list_url = f"{self.settings.frontend_url}/app/lists/{list_id}"
        name = escape(list_name)
        return self.send_email(
            to,
            subject=f"{list_name} — {new_count} nuevos inmuebles",
            html=_layout(
                "<h1 style=\"color: #1E3A5F;\">Nueva actualización disponible</h1>"
                f"<p>La lista <strong>{name}</strong> tiene "
                f"<strong style=\"color: #10B981;\">{new_count} nuevos inmuebles</strong> "
                "disponibles para ti.</p>"
                f"{_button('Ver inmuebles', list_url)}",
                self.settings.frontend_url,
            ),
            text=f"La lista {list_name} tiene {new_count} nuevos inmuebles. Ver: {list_url}",
        )

    def send_list_request_approved_email(self, to: str, list_name: str, location: str) -> bool:
        subscriptions_url = f"{self.settings.frontend_url}/app/subscriptions"
        return self.send_email(
            to,
            subject=f"Tu solicitud de lista ha sido aprobada: {list_name}",
            html=_layout(
                "<h1 style=\"color: #1E3A5F;\">¡Solicitud aprobada!</h1>"
                f"<p>Tu solicitud de una lista para <strong>{escape(location)}</strong> ha sido aprobada. "
                f"La lista <strong>{escape(list_name)}</strong> ya está disponible.</p>"
                f"{_button('Ver listas disponibles', subscriptions_url)}",
                self.settings.frontend_url,
            ),
            text=f"Tu solicitud para {location} ha sido aprobada. La lista {list_name} ya está disponible.",
        )

    def send_list_request_rejected_email(self, to: str, location: str) -> bool:
        return self.send_email(
            to,
            subject="Solicitud de lista no aprobada",
            html=_layout(
                "<h1 style=\"color: #1E3A5F;\">Solicitud no aprobada</h1>"
                f"<p>Lamentamos informarte de que tu solicitud de una lista para "
                f"<strong>{escape(location)}</strong> no ha podido ser aprobada en este momento.</p>"
                "<p>Si tienes preguntas, no dudes en contactarnos.</p>",
                self.settings.frontend_url,
            ),
            text=f"Tu solicitud de lista para {location} no ha sido aprobada.",
        )

    def notify_list_subscribers(
        self,
        subscribers: Iterable[Subscriber],
        list_name: str,
        new_count: int,
        list_id: str,
    ) -> NotificationResult:
        """
        Tell every subscriber about new properties in a list.

        A failed recipient is counted and skipped; the rest still get mail.
        """
        result = NotificationResult()
        subscribers = list(subscribers)
        if not subscribers or new_count <= 0:
            return result

        for subscriber in subscribers:
            if self.send_list_updated_email(subscriber.email, list_name, new_count, list_id):
                result.sent += 1
            else:
                result.failed += 1

        LOGGER.info(
            f"List update notifications for '{list_name}': {result.sent} sent, {result.failed} failed",
            extra={"list_id": list_id},
        )
        return result


def notify_after_ingestion(
    session_factory: sessionmaker,
    result: IngestionResult,
    notifier: Optional[EmailNotifier] = None,
    settings: Optional[Settings] = None,
) -> NotificationResult:
    """
    Fan out list-update e-mails after an upload.

    Runs after the upload's transaction has committed, typically as a
    background task. Failures are logged and never reach the uploader.
    """
    if not result.should_notify:
        return NotificationResult()

    owned = notifier is None
    notifier = notifier or EmailNotifier(settings)
    try:
        with session_scope(session_factory) as session:
            subscribers = SubscriptionService(session).get_list_subscribers_with_notifications(result.list_id)
        return notifier.notify_list_subscribers(
            subscribers, result.list_name, result.stats.new, result.list_id
        )
    except Exception:
        LOGGER.exception("List update notification failed", extra={"list_id": result.list_id})
        return NotificationResult()
    finally:
        if owned:
            notifier.close()


def notify_list_request_outcome(
    to: Optional[str],
    location: str,
    approved: bool,
    list_name: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> bool:
    """Tell the requester whether their list request was approved."""
    if not to:
        LOGGER.info(f"No e-mail on file, skipping list request notification for '{location}'")
        return False

    notifier = EmailNotifier(settings)
    try:
        if approved:
            return notifier.send_list_request_approved_email(to, list_name or location, location)
        return notifier.send_list_request_rejected_email(to, location)
    except Exception:
        LOGGER.exception("List request notification failed")
        return False
    finally:
        notifier.close()


__all__ = ["EmailNotifier", "NotificationResult", "notify_after_ingestion", "notify_list_request_outcome"]
