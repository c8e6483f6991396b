"""Unit tests for CredentialSelector and credential eligibility."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from ticket_mailer.core.exceptions import QueueStoreError
from ticket_mailer.models import EmailCredential
from ticket_mailer.worker.credentials import CredentialSelector


def make_credential(cred_id: str, **overrides) -> EmailCredential:
    values = {
        "id": cred_id,
        "email": f"{cred_id}@mailer.example.com",
        "smtp_server": "smtp.example.com",
        "daily_limit": 10,
        "daily_usage": 0,
    }
    values.update(overrides)
    return EmailCredential(**values)


class TestEligibility:
    """Tests for EmailCredential.is_eligible."""

    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({}, True),
            ({"daily_usage": 9}, True),
            ({"daily_usage": 10}, False),
            ({"is_active": False}, False),
            ({"daily_limit": None, "daily_usage": 10_000}, True),
            ({"daily_limit": 0}, False),
        ],
    )
    def test_is_eligible(self, overrides, expected):
        assert make_credential("c", **overrides).is_eligible is expected


class TestSelect:
    """Tests for first-match selection."""

    def test_first_eligible_in_store_order(self, fake_store):
        """Test exhausted and inactive credentials are skipped."""
        fake_store.add_credential(make_credential("a", daily_usage=10))
        fake_store.add_credential(make_credential("b", is_active=False))
        fake_store.add_credential(make_credential("c"))
        fake_store.add_credential(make_credential("d"))

        assert CredentialSelector(fake_store).select().id == "c"

    def test_none_when_all_exhausted(self, fake_store):
        """Test no credential is returned when quota is used up."""
        fake_store.add_credential(make_credential("a", daily_usage=10))

        assert CredentialSelector(fake_store).select() is None

    def test_ineligible_store_result_rejected(self):
        """Test a stale row that is no longer eligible is not used."""
        store = MagicMock()
        store.find_available_credential.return_value = make_credential("a", daily_usage=10)

        assert CredentialSelector(store).select() is None

    def test_store_error_propagates(self):
        """Test query failures reach the caller as QueueStoreError."""
        store = MagicMock()
        store.find_available_credential.side_effect = QueueStoreError("down")

        with pytest.raises(QueueStoreError):
            CredentialSelector(store).select()
