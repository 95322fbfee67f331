"""
Transactional email client (SendGrid v3 REST API).

Used endpoint:
- POST /v3/mail/send  -> 202 Accepted, empty body
"""

from __future__ import annotations

from typing import Any

import httpx

from .settings import env_str

DEFAULT_API_BASE_URL = "https://api.sendgrid.com"
DEFAULT_FROM_EMAIL = "digitalassist@nordstern.ae"


class MailerError(RuntimeError):
    pass


def api_base_url() -> str:
    return env_str("SENDGRID_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/")


def from_email() -> str:
    return env_str("MAIL_FROM", DEFAULT_FROM_EMAIL)


async def send_email(
    *,
    to: str,
    subject: str,
    text: str,
    html: str | None = None,
    timeout_s: float = 15.0,
) -> None:
    api_key = env_str("SENDGRID_API_KEY")
    if not api_key:
        raise MailerError("SENDGRID_API_KEY is not set.")

    recipient = (to or "").strip()
    if not recipient:
        raise MailerError("Recipient address is empty.")

    content: list[dict[str, str]] = [{"type": "text/plain", "value": text}]
    if html:
        content.append({"type": "text/html", "value": html})

    payload: dict[str, Any] = {
        "personalizations": [{"to": [{"email": recipient}]}],
        "from": {"email": from_email()},
        "subject": subject,
        "content": content,
    }

    try:
        async with httpx.AsyncClient(base_url=api_base_url(), timeout=timeout_s) as client:
            resp = await client.post(
                "/v3/mail/send",
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
    except httpx.HTTPError as exc:
        raise MailerError(f"Mail request failed: {exc}") from exc

    if resp.status_code not in (200, 202):
        body = resp.text[:500]
        raise MailerError(f"Mail send failed: {resp.status_code} {body}")
