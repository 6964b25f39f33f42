"""
Unit tests for message composition.
The HTML bodies must never carry unescaped user content.
"""

from datetime import datetime, timezone

import pytest

from contact_api.config import ContactSettings
from contact_api.models.submission import CleanSubmission, RequestMeta
from contact_api.services.composer import (
    compose_confirmation_message,
    compose_owner_message,
    escape_html,
    first_word,
)

RECEIVED = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)

HOSTILE = '<script>alert("x")</script> & \'quoted\''


@pytest.fixture()
def settings() -> ContactSettings:
    return ContactSettings(
        owner_email="owner@example.com",
        sender_email="no-reply@example.com",
        sender_name="Portfolio Bot",
        cc_emails=("assistant@example.com",),
        site_owner_name="Sam Owner",
        site_url="https://example.com",
    )


@pytest.fixture()
def submission() -> CleanSubmission:
    return CleanSubmission(
        name="Ada Lovelace",
        email="ada@example.com",
        subject="Collaboration",
        message="Hello!\nLet's build something.",
    )


class TestEscapeHtml:

    def test_escapes_all_five_metacharacters(self):
        assert escape_html("&<>\"'") == "&amp;&lt;&gt;&quot;&#x27;"

    def test_escape_is_not_idempotent(self):
        """Escaping twice changes the text again, so it must happen exactly once."""
        once = escape_html("<b>")
        assert escape_html(once) != once

    def test_none_becomes_empty(self):
        assert escape_html(None) == ""


class TestFirstWord:

    def test_returns_first_word(self):
        assert first_word("Ada Lovelace") == "Ada"

    def test_empty_name_falls_back(self):
        assert first_word("   ") == "there"


class TestOwnerMessage:

    def test_addresses_and_subject(self, submission, settings):
        msg = compose_owner_message(submission, settings, received_at=RECEIVED)

        assert msg.to == "owner@example.com"
        assert msg.from_address == "no-reply@example.com"
        assert msg.from_name == "Portfolio Bot"
        assert msg.reply_to == "ada@example.com"
        assert msg.reply_to_name == "Ada Lovelace"
        assert msg.cc == ("assistant@example.com",)
        assert msg.subject == "New Contact: Collaboration - from Ada Lovelace"

    def test_text_body_carries_fields_and_meta(self, submission, settings):
        meta = RequestMeta(client_ip="203.0.113.7", user_agent="Firefox", referer="https://example.com/")

        msg = compose_owner_message(submission, settings, meta=meta, received_at=RECEIVED)

        assert "Name: Ada Lovelace" in msg.text
        assert "Email: ada@example.com" in msg.text
        assert "Subject: Collaboration" in msg.text
        assert "Received: 2026-03-01T12:30:00+00:00" in msg.text
        assert "IP: 203.0.113.7" in msg.text
        assert "User-Agent: Firefox" in msg.text
        assert "Referer: https://example.com/" in msg.text
        assert "Hello!\nLet's build something." in msg.text

    def test_missing_meta_reads_unknown(self, submission, settings):
        msg = compose_owner_message(submission, settings, received_at=RECEIVED)
        assert "IP: unknown" in msg.text

    def test_html_body_escapes_user_content(self, settings):
        hostile = CleanSubmission(
            name=HOSTILE[:100],
            email="ada@example.com",
            subject=HOSTILE,
            message=HOSTILE,
        )
        meta = RequestMeta(user_agent="<img src=x onerror=alert(1)>")

        msg = compose_owner_message(hostile, settings, meta=meta, received_at=RECEIVED)

        assert "<script>" not in msg.html
        assert "<img" not in msg.html
        assert escape_html(HOSTILE) in msg.html
        # escaped exactly once
        assert escape_html(escape_html(HOSTILE)) not in msg.html

    def test_text_body_uses_raw_values(self, settings):
        hostile = CleanSubmission(
            name="Ada", email="ada@example.com", subject="a < b", message="x & y are > z"
        )

        msg = compose_owner_message(hostile, settings, received_at=RECEIVED)

        assert "Subject: a < b" in msg.text
        assert "x & y are > z" in msg.text
        assert "a &lt; b" in msg.html

    def test_message_with_template_placeholders_is_literal(self, settings):
        tricky = CleanSubmission(
            name="Ada", email="ada@example.com", message="pay $name and ${subject} now"
        )

        msg = compose_owner_message(tricky, settings, received_at=RECEIVED)

        assert "pay $name and ${subject} now" in msg.html


class TestConfirmationMessage:

    def test_addresses_and_subject(self, submission, settings):
        msg = compose_confirmation_message(submission, settings, received_at=RECEIVED)

        assert msg.to == "ada@example.com"
        assert msg.from_address == "no-reply@example.com"
        assert msg.reply_to == "owner@example.com"
        assert msg.cc == ()
        assert msg.subject == "Thanks for connecting! - Collaboration"

    def test_echoes_subject_and_message(self, submission, settings):
        msg = compose_confirmation_message(submission, settings, received_at=RECEIVED)

        assert msg.text.startswith("Hi Ada,")
        assert "Subject: Collaboration" in msg.text
        assert "Hello!\nLet's build something." in msg.text
        assert "Sam Owner" in msg.text
        assert "https://example.com" in msg.text
        assert "Let&#x27;s build something." in msg.html

    def test_html_body_escapes_user_content(self, settings):
        hostile = CleanSubmission(
            name="<b>Mallory</b>", email="m@example.com", subject=HOSTILE, message=HOSTILE
        )

        msg = compose_confirmation_message(hostile, settings, received_at=RECEIVED)

        assert "<script>" not in msg.html
        assert "<b>Mallory" not in msg.html
        assert "&lt;b&gt;Mallory&lt;/b&gt;" in msg.html

    def test_sender_falls_back_to_owner_address(self, submission):
        settings = ContactSettings(owner_email="owner@example.com")

        msg = compose_confirmation_message(submission, settings, received_at=RECEIVED)

        assert msg.from_address == "owner@example.com"
