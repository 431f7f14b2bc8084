"""
Email transport and message templates.

Transports implement `EmailSender.send(...) -> (success, error_message)` and
never raise for delivery problems: callers decide whether a failed send
matters. The Resend transport talks to the Resend HTTP API with httpx.
"""

import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache

import httpx

from ..core.config import get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# TRANSPORTS
# =============================================================================


class EmailSender(ABC):
    """Abstract email transport."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        reply_to: str | None = None,
        idempotency_key: str | None = None,
    ) -> tuple[bool, str | None]:
        """
        Send one email.

        Returns:
            (success, error_message)
        """
        pass


class ResendEmailSender(EmailSender):
    """Delivers mail through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_address: str,
        base_url: str = "https://api.resend.com",
        timeout_seconds: float = 20.0,
    ):
        self._api_key = api_key
        self._from_address = from_address
        self._send_url = f"{base_url.rstrip('/')}/emails"
        self._timeout = timeout_seconds

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        reply_to: str | None = None,
        idempotency_key: str | None = None,
    ) -> tuple[bool, str | None]:
        payload: dict[str, object] = {
            "from": self._from_address,
            "to": [to],
            "subject": subject,
            "html": html_body,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._send_url, headers=headers, json=payload)
        except httpx.TimeoutException:
            logger.warning(f"Resend timeout sending to {to}")
            return False, "Connection timeout"
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed for {to}: {e}")
            return False, f"Request failed: {e}"

        if response.status_code >= 400:
            error = f"Resend API error {response.status_code}: {response.text[:200]}"
            logger.error(error)
            return False, error

        logger.info(f"[EMAIL] Sent to {to}: {subject}")
        return True, None


class LoggingEmailSender(EmailSender):
    """Development transport: logs the message instead of sending it."""

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        reply_to: str | None = None,
        idempotency_key: str | None = None,
    ) -> tuple[bool, str | None]:
        logger.info(f"[EMAIL] To: {to}, Subject: {subject} (not sent, no transport configured)")
        return True, None


@lru_cache
def get_email_sender() -> EmailSender:
    """Transport chosen from settings: Resend when an API key is present."""
    settings = get_settings()
    if settings.resend_enabled:
        return ResendEmailSender(
            api_key=settings.resend_api_key,
            from_address=settings.email_from,
            base_url=settings.resend_base_url,
            timeout_seconds=settings.email_timeout_seconds,
        )
    logger.warning("RESEND_API_KEY not set, outgoing email will only be logged")
    return LoggingEmailSender()


# =============================================================================
# TEMPLATES
# =============================================================================


@dataclass
class EmailMessage:
    subject: str
    html_body: str
    items: list[str] = field(default_factory=list)


def _layout(heading: str, paragraphs: list[str], items: list[str], link: str | None) -> str:
    """Shared HTML shell for outgoing mail."""
    body = "".join(f"<p>{html.escape(p)}</p>" for p in paragraphs)
    if items:
        body += "<ul>" + "".join(f"<li>{html.escape(i)}</li>" for i in items) + "</ul>"
    if link:
        body += (
            f'<p><a href="{html.escape(link, quote=True)}" '
            'style="background-color: #2563EB; color: white; padding: 10px 18px; '
            'border-radius: 6px; text-decoration: none;">Open the portal</a></p>'
        )

    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
             line-height: 1.6; color: #374151; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="font-size: 18px; margin: 0 0 16px 0;">{html.escape(heading)}</h1>
    {body}
</body>
</html>
"""


def project_link(project_id: object | None = None) -> str:
    base = get_settings().portal_base_url.rstrip("/")
    if project_id is None:
        return f"{base}/login"
    return f"{base}/projects/{project_id}"


def build_update_email(
    project_name: str,
    what: str,
    message: str,
    project_id: object | None = None,
) -> EmailMessage:
    """Single-event email: `Update in <project>: <what>`."""
    subject = f"Update in {project_name}: {what}"
    return EmailMessage(
        subject=subject,
        html_body=_layout(what, [message], [], project_link(project_id)),
    )


def build_digest_email(
    project_name: str,
    summary_parts: list[str],
    project_id: object | None = None,
) -> EmailMessage:
    """Digest email listing what changed since the last digest."""
    summary = ", ".join(summary_parts)
    subject = f"Updates in {project_name}: {summary}"
    return EmailMessage(
        subject=subject,
        html_body=_layout(
            f"New activity in {project_name}",
            ["Here is what has been added to your project since we last wrote:"],
            summary_parts,
            project_link(project_id),
        ),
        items=summary_parts,
    )


def build_invite_email(first_name: str, invited_by: str | None = None) -> EmailMessage:
    intro = (
        f"{invited_by} invited you to the project portal."
        if invited_by
        else "You have been invited to the project portal."
    )
    return EmailMessage(
        subject="You're invited to the project portal",
        html_body=_layout(
            f"Welcome, {first_name}",
            [intro, "Sign in with this email address to view your projects."],
            [],
            project_link(None),
        ),
    )
