"""Invitation emails sent through the Resend API."""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from urllib.parse import urlencode

import resend

from src.crewgate.core.config import get_settings
from src.crewgate.core.logging import get_logger

logger = get_logger(__name__)

# Bounded pool so a slow API call can be abandoned after a timeout
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_BUTTON_STYLE = (
    "background-color: #0f766e; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block; font-weight: 500;"
)
_MUTED_STYLE = "color: #666; font-size: 14px;"


def build_acceptance_url(token: str) -> str:
    settings = get_settings()
    return f"{settings.app_url}/invitations/accept?{urlencode({'token': token})}"


def send_invitation_email(
    to: str,
    token: str,
    tenant_name: str,
    role: str,
    inviter_name: str,
) -> bool:
    """Send a team invitation email.

    Blocking; call it from a worker thread in async code.

    Args:
        to: Invitee address
        token: Raw invitation token, embedded only in the acceptance link
        tenant_name: Display name of the inviting team
        role: Role being offered
        inviter_name: Display name of the issuing member

    Returns:
        True if the email was sent (or logged in dev mode), False on error
    """
    settings = get_settings()
    acceptance_url = build_acceptance_url(token)

    if not settings.resend_api_key:
        logger.warning(
            "RESEND_API_KEY not set - invitation email not sent",
            email_type="invitation",
        )
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": [to],
                "subject": f"{inviter_name} invited you to join {tenant_name}",
                "html": _get_invitation_email_html(
                    tenant_name,
                    role,
                    inviter_name,
                    acceptance_url,
                    settings.invitation_expire_hours,
                ),
            }
        )

    try:
        future = _email_executor.submit(_send)
        future.result(timeout=settings.email_send_timeout_seconds)
        logger.info("Invitation email sent")
        return True
    except FuturesTimeoutError:
        logger.error("Email send timed out", timeout=settings.email_send_timeout_seconds)
        return False
    except Exception as e:
        logger.error("Failed to send invitation email", error=str(e))
        return False


def _get_invitation_email_html(
    tenant_name: str,
    role: str,
    inviter_name: str,
    acceptance_url: str,
    expire_hours: int,
) -> str:
    safe_tenant_name = html.escape(tenant_name)
    safe_inviter_name = html.escape(inviter_name)
    safe_role = html.escape(role)
    safe_url = html.escape(acceptance_url, quote=True)
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #0f766e; margin-bottom: 24px;">You're invited!</h1>
    <p>{safe_inviter_name} has invited you to join <strong>{safe_tenant_name}</strong>
    as <strong>{safe_role}</strong>.</p>
    <p style="margin: 32px 0;">
        <a href="{safe_url}" style="{_BUTTON_STYLE}">Accept Invitation</a>
    </p>
    <p style="{_MUTED_STYLE}">
        This invitation expires in {expire_hours} hours. If you didn't expect it,
        you can safely ignore this email.
    </p>
</body>
</html>"""
