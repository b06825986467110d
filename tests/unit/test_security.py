"""
Unit tests for API key and password helpers
"""

import pytest
from datetime import datetime, timedelta, timezone

from docshelf.core.security import (
    hash_api_key,
    hash_password,
    is_expired,
    issue_api_key,
    parse_bearer,
    verify_password,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestApiKeys:

    def test_issued_key_matches_its_hash(self):
        issued = issue_api_key()

        assert issued.key.startswith("ds_")
        assert issued.key_hash == hash_api_key(issued.key)
        assert issued.key.startswith(issued.display_prefix)
        assert issue_api_key().key != issued.key

    @pytest.mark.parametrize("header, expected", [
        ("Bearer ds_abc", "ds_abc"),
        ("Bearer   ds_abc  ", "ds_abc"),
        ("Bearer ", None),
        ("Basic dXNlcg==", None),
        ("", None),
        (None, None),
    ])
    def test_parse_bearer(self, header, expected):
        assert parse_bearer(header) == expected

    def test_expiry_handles_naive_timestamps(self):
        assert is_expired(None, NOW) is False
        assert is_expired(NOW - timedelta(seconds=1), NOW) is True
        assert is_expired((NOW + timedelta(hours=1)).replace(tzinfo=None), NOW) is False


@pytest.mark.unit
def test_password_round_trip():
    hashed = hash_password("secret123")

    assert verify_password("secret123", hashed) is True
    assert verify_password("wrong", hashed) is False
