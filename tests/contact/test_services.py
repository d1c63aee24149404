"""Tests for the submission intake service."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from consultsite.contact.models import ContactForm, RelayStatus
from consultsite.contact.services import SubmissionIntakeService, validate
from consultsite.contact.store import MemorySubmissionStore
from consultsite.errors import RelayFailed, ValidationFailed
from consultsite.integrations.web3forms import RelayConfig


def _valid_payload(**overrides) -> dict:
    payload = {
        "name": "Alice",
        "email": "alice@acme.io",
        "business": "Acme",
        "message": "Hello there, I need a website.",
    }
    payload.update(overrides)
    return payload


def _make_relay(side_effect=None) -> MagicMock:
    relay = MagicMock()
    relay.config = RelayConfig(access_key="test-key")
    relay.submit.return_value = {"success": True}
    relay.submit.side_effect = side_effect
    return relay


def _errors(excinfo) -> dict[str, str]:
    return {e.field: e.message for e in excinfo.value.errors}


# ── Validation ──────────────────────────────────────────────────────────

class TestValidate:
    def test_valid_payload(self):
        form = validate(ContactForm, _valid_payload())
        assert form.name == "Alice"
        assert str(form.email) == "alice@acme.io"

    def test_surrounding_whitespace_is_trimmed(self):
        form = validate(ContactForm, _valid_payload(name="  Bob  "))
        assert form.name == "Bob"

    def test_two_character_name_is_accepted(self):
        assert validate(ContactForm, _valid_payload(name="Al")).name == "Al"

    def test_one_character_name_is_rejected(self):
        with pytest.raises(ValidationFailed) as excinfo:
            validate(ContactForm, _valid_payload(name="A"))
        assert _errors(excinfo) == {"name": "Name must be at least 2 characters."}

    def test_name_shorter_than_two_after_trimming(self):
        with pytest.raises(ValidationFailed) as excinfo:
            validate(ContactForm, _valid_payload(name="  A  "))
        assert "name" in _errors(excinfo)

    def test_ten_character_message_is_accepted(self):
        assert validate(ContactForm, _valid_payload(message="0123456789")).message == "0123456789"

    def test_nine_character_message_is_rejected(self):
        with pytest.raises(ValidationFailed) as excinfo:
            validate(ContactForm, _valid_payload(message="012345678"))
        assert _errors(excinfo) == {"message": "Message must be at least 10 characters."}

    @pytest.mark.parametrize("email", ["not-an-email", "a@", "@b.com", ""])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationFailed) as excinfo:
            validate(ContactForm, _valid_payload(email=email))
        assert _errors(excinfo) == {"email": "Please enter a valid email address."}

    def test_business_is_optional(self):
        payload = _valid_payload()
        del payload["business"]
        assert validate(ContactForm, payload).business is None

    def test_blank_business_becomes_none(self):
        assert validate(ContactForm, _valid_payload(business="   ")).business is None

    def test_non_text_business_is_rejected(self):
        with pytest.raises(ValidationFailed) as excinfo:
            validate(ContactForm, _valid_payload(business=42))
        assert _errors(excinfo) == {"business": "Business name must be text."}

    def test_missing_fields(self):
        with pytest.raises(ValidationFailed) as excinfo:
            validate(ContactForm, {})
        assert _errors(excinfo) == {
            "name": "Name is required.",
            "email": "Email is required.",
            "message": "Message is required.",
        }

    def test_errors_listed_in_form_field_order(self):
        with pytest.raises(ValidationFailed) as excinfo:
            validate(
                ContactForm,
                {"message": "short", "email": "not-an-email", "name": "Al"},
            )
        assert [e.field for e in excinfo.value.errors] == ["email", "message"]

    def test_unknown_fields_are_ignored(self):
        form = validate(ContactForm, _valid_payload(phone="555-0100"))
        assert not hasattr(form, "phone")

    @pytest.mark.parametrize("payload", [None, [], "name=Alice"])
    def test_non_object_body(self, payload):
        with pytest.raises(ValidationFailed) as excinfo:
            validate(ContactForm, payload)
        assert [e.field for e in excinfo.value.errors] == ["body"]


# ── submit ──────────────────────────────────────────────────────────────

class TestSubmit:
    def test_first_submission_gets_id_one(self):
        service = SubmissionIntakeService(MemorySubmissionStore())

        result = service.submit(_valid_payload())

        assert result.submission.id == 1
        assert result.submission.name == "Alice"
        assert result.submission.email == "alice@acme.io"
        assert result.submission.business == "Acme"
        assert result.submission.submitted_at.tzinfo is not None

    def test_ids_increase(self):
        service = SubmissionIntakeService()

        first = service.submit(_valid_payload())
        second = service.submit(_valid_payload(name="Bob"))

        assert (first.submission.id, second.submission.id) == (1, 2)
        assert [s.id for s in service.submissions()] == [1, 2]

    def test_invalid_payload_stores_nothing(self):
        service = SubmissionIntakeService()

        with pytest.raises(ValidationFailed):
            service.submit({"name": "Al", "email": "not-an-email", "message": "short"})

        assert service.submissions() == []

    def test_rejected_submission_does_not_consume_an_id(self):
        service = SubmissionIntakeService()
        with pytest.raises(ValidationFailed):
            service.submit(_valid_payload(email="nope"))

        assert service.submit(_valid_payload()).submission.id == 1

    def test_relay_skipped_when_unconfigured(self):
        result = SubmissionIntakeService().submit(_valid_payload())
        assert result.relay.status == RelayStatus.SKIPPED

    def test_relay_delivered(self):
        relay = _make_relay()
        result = SubmissionIntakeService(relay=relay).submit(_valid_payload())

        assert result.relay.status == RelayStatus.DELIVERED
        fields = relay.submit.call_args[0][0]
        assert fields["email"] == "alice@acme.io"
        assert fields["business"] == "Acme"
        assert relay.submit.call_args[1]["subject"] == "New contact form submission from Alice"

    def test_relay_failure_keeps_the_stored_submission(self):
        relay = _make_relay(side_effect=RelayFailed("Invalid access key"))
        service = SubmissionIntakeService(relay=relay)

        result = service.submit(_valid_payload())

        assert result.relay.status == RelayStatus.FAILED
        assert result.relay.detail == "Invalid access key"
        assert [s.id for s in service.submissions()] == [1]

    def test_unconfigured_relay_client_is_skipped(self):
        relay = _make_relay()
        relay.config = RelayConfig()
        result = SubmissionIntakeService(relay=relay).submit(_valid_payload())

        assert result.relay.status == RelayStatus.SKIPPED
        relay.submit.assert_not_called()

    def test_concurrent_submissions_get_unique_ids(self):
        service = SubmissionIntakeService()
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            service.submit(_valid_payload())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert [s.id for s in service.submissions()] == list(range(1, 9))


# ── Newsletter ──────────────────────────────────────────────────────────

class TestNewsletter:
    def test_signup_is_relayed(self):
        relay = _make_relay()
        service = SubmissionIntakeService(relay=relay)

        service.subscribe_newsletter({"email": "reader@acme.io"})

        fields = relay.submit.call_args[0][0]
        assert fields["email"] == "reader@acme.io"
        assert relay.submit.call_args[1]["subject"] == "New Newsletter Subscription"
        assert service.submissions() == []

    def test_invalid_email(self):
        service = SubmissionIntakeService(relay=_make_relay())
        with pytest.raises(ValidationFailed):
            service.subscribe_newsletter({"email": "nope"})

    def test_unconfigured_relay_fails(self):
        with pytest.raises(RelayFailed):
            SubmissionIntakeService().subscribe_newsletter({"email": "reader@acme.io"})

    def test_relay_failure_propagates(self):
        service = SubmissionIntakeService(relay=_make_relay(side_effect=RelayFailed("down")))
        with pytest.raises(RelayFailed):
            service.subscribe_newsletter({"email": "reader@acme.io"})
