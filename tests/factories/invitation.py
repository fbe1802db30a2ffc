"""Invitation factory for test data generation."""

from datetime import timedelta
from uuid import uuid4

from polyfactory import Use

from src.crewgate.core.security import generate_invitation_token, hash_token
from src.crewgate.models import Invitation, Role
from tests.factories.base import BaseFactory, short_id, utc_now


class InvitationFactory(BaseFactory):
    """Pending invitation expiring in two days."""

    __model__ = Invitation

    id = Use(uuid4)
    email = Use(lambda: f"invitee_{short_id()}@example.com")
    role = Role.STAFF.value
    token_hash = Use(lambda: hash_token(generate_invitation_token()))
    created_at = Use(utc_now)
    updated_at = Use(utc_now)
    expires_at = Use(lambda: utc_now() + timedelta(hours=48))
    accepted_at = None
    accepted_by_user_id = None

    @classmethod
    def with_token(cls, **kwargs) -> tuple[Invitation, str]:
        """Build an invitation and return it with its raw token."""
        token = generate_invitation_token()
        return cls.build(token_hash=hash_token(token), **kwargs), token

    @classmethod
    def expired(cls, **kwargs):
        return cls.build(expires_at=utc_now() - timedelta(minutes=1), **kwargs)

    @classmethod
    def accepted(cls, **kwargs):
        return cls.build(accepted_at=utc_now(), **kwargs)
