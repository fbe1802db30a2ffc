"""User and membership factories for test data generation."""

from uuid import uuid4

from polyfactory import Use

from src.crewgate.models import Membership, MembershipStatus, Role, User
from tests.factories.base import BaseFactory, short_id, utc_now


class UserFactory(BaseFactory):
    """Factory for generating User test data."""

    __model__ = User

    id = Use(uuid4)
    email = Use(lambda: f"user_{short_id()}@example.com")
    full_name = "Test User"
    is_active = True
    created_at = Use(utc_now)
    updated_at = Use(utc_now)

    @classmethod
    def inactive(cls, **kwargs):
        return cls.build(is_active=False, **kwargs)


class MembershipFactory(BaseFactory):
    """Active staff membership unless told otherwise."""

    __model__ = Membership

    id = Use(uuid4)
    role = Role.STAFF.value
    status = MembershipStatus.ACTIVE.value
    invited_by_user_id = None
    joined_at = Use(utc_now)
    created_at = Use(utc_now)
    updated_at = Use(utc_now)

    @classmethod
    def with_role(cls, role: Role, **kwargs):
        return cls.build(role=role.value, **kwargs)

    @classmethod
    def removed(cls, **kwargs):
        return cls.build(status=MembershipStatus.REMOVED.value, **kwargs)
