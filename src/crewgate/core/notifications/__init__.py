"""Notification utilities - email."""

from src.crewgate.core.notifications.email import build_acceptance_url, send_invitation_email

__all__ = [
    "build_acceptance_url",
    "send_invitation_email",
]
