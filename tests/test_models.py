"""Tests for the core domain models."""

from datetime import datetime

import pytest

from tempmail_sync.core import Address, Domain, Mail, Session

from conftest import make_mail


class TestAddress:
    """Tests for Address."""

    def test_login_and_domain_name(self, sample_address):
        assert sample_address.login == "x"
        assert sample_address.domain_name == "mail.test"

    def test_domain_name_without_at(self, domain):
        address = Address(id="a9", address="broken", domain=domain)
        assert address.domain_name == ""
        assert address.login == "broken"

    def test_repr_hides_restore_key(self, sample_address):
        assert "restore-a1" not in repr(sample_address)

    def test_snapshot_is_independent(self, sample_address):
        copy = sample_address.snapshot()
        copy.mails.append(make_mail("m2"))

        assert sample_address.mail_ids == ["m1"]
        assert copy.mail_ids == ["m1", "m2"]
        assert copy.restore_key == sample_address.restore_key

    def test_mails_chronological(self, domain):
        undated = Mail(id="m0")
        address = Address(
            id="a1",
            address="x@mail.test",
            domain=domain,
            mails=[make_mail("late", minute=30), undated, make_mail("early", minute=5)],
        )

        ordered = [mail.id for mail in address.mails_chronological()]

        assert ordered == ["early", "late", "m0"]
        # Storage order is untouched
        assert address.mail_ids == ["late", "m0", "early"]

    def test_str_shows_mail_count(self, sample_address):
        assert str(sample_address) == "x@mail.test (1)"


class TestMail:
    """Tests for Mail."""

    def test_is_immutable(self):
        mail = make_mail("m1")
        with pytest.raises(AttributeError):
            mail.subject = "changed"

    def test_preview_truncates(self):
        mail = Mail(id="m1", text="word " * 50)
        assert len(mail.preview) == 100
        assert mail.preview.endswith("...")

    def test_preview_collapses_whitespace(self):
        mail = Mail(id="m1", text="Hello\n\n   world")
        assert mail.preview == "Hello world"


class TestSession:
    """Tests for Session."""

    def test_generate_gives_unique_ids(self):
        assert Session.generate().id != Session.generate().id

    def test_created_at_defaults_to_now(self):
        before = datetime.now()
        session = Session(id="s1")
        assert session.created_at >= before


def test_domain_str():
    assert str(Domain(id="d1", name="mail.test")) == "mail.test"
