"""Tests for email validation and canonical form."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from src.crewgate.core.exceptions import InvalidInputError
from src.crewgate.core.validators import MAX_EMAIL_LENGTH, canonical_email, normalize_email

pytestmark = pytest.mark.unit

local_parts = st.from_regex(r"^[a-z][a-z0-9._]{0,20}[a-z0-9]$", fullmatch=True).filter(
    lambda s: ".." not in s
)


class TestNormalizeEmail:
    def test_lower_cases_and_trims(self):
        assert normalize_email("  Chef.Anna@Example.COM ") == "chef.anna@example.com"

    @pytest.mark.parametrize("value", ["", "   ", "no-at-sign", "a@", "@example.com", "a b@c.com"])
    def test_malformed_rejected(self, value):
        with pytest.raises(InvalidInputError) as exc_info:
            normalize_email(value)
        assert exc_info.value.details["field"] == "email"

    def test_too_long_rejected(self):
        value = "a" * MAX_EMAIL_LENGTH + "@example.com"
        with pytest.raises(InvalidInputError):
            normalize_email(value)

    @given(local=local_parts)
    def test_case_variants_share_identity(self, local):
        address = f"{local}@example.com"
        assert normalize_email(address.upper()) == normalize_email(address)


class TestCanonicalEmail:
    @given(value=st.emails())
    def test_idempotent(self, value):
        once = canonical_email(value)
        assert canonical_email(once) == once
