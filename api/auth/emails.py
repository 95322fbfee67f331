"""
Password reset email bodies.
"""

from __future__ import annotations

from html import escape

RESET_SUBJECT = "Password Reset Request - Nordstern Digital Solutions"


def reset_link(frontend_url: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/reset-password?token={token}"


def reset_email_text(*, first_name: str, link: str, expires_minutes: int, support_email: str) -> str:
    return (
        f"Hi {first_name},\n\n"
        "We received a request to reset your password for your Nordstern Digital Solutions account.\n\n"
        "Please open the following link to reset your password:\n"
        f"{link}\n\n"
        f"This link will expire in {expires_minutes} minutes.\n\n"
        "If you did not request a password reset, please ignore this email or contact our "
        f"support team at {support_email}.\n\n"
        "Best regards,\n"
        "The Nordstern Team"
    )


def reset_email_html(*, first_name: str, link: str, expires_minutes: int, support_email: str) -> str:
    name = escape(first_name)
    href = escape(link, quote=True)
    support = escape(support_email)
    return (
        "<!DOCTYPE html><html><body style=\"font-family: sans-serif; color: #333;\">"
        f"<p>Hi <strong>{name}</strong>,</p>"
        "<p>We received a request to reset your password. Use the button below to reset it:</p>"
        f"<p><a href=\"{href}\" style=\"background-color: #28a745; color: white; padding: 12px 30px; "
        "text-decoration: none; border-radius: 5px;\">Reset Password</a></p>"
        f"<p>If the button doesn't work, copy this link into your browser:<br>{href}</p>"
        f"<p>This link will expire in {expires_minutes} minutes. If you didn't request this, "
        f"ignore this email or contact {support}.</p>"
        "</body></html>"
    )
