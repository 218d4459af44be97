"""Tests for the append-only mail merge."""

from tempmail_sync.sync import AddressRegistry, MailSynchronizer, MergeResult

from conftest import make_mail


def ids(mails):
    return [mail.id for mail in mails]


class TestMerge:
    """Tests for MailSynchronizer.merge()."""

    def test_appends_unseen_mail(self):
        local = [make_mail("m1")]

        appended = MailSynchronizer.merge(local, [make_mail("m1"), make_mail("m2")])

        assert ids(local) == ["m1", "m2"]
        assert ids(appended) == ["m2"]

    def test_is_idempotent(self):
        local = [make_mail("m1")]
        snapshot = [make_mail("m1"), make_mail("m2"), make_mail("m3")]

        MailSynchronizer.merge(local, snapshot)
        after_first = ids(local)
        appended = MailSynchronizer.merge(local, snapshot)

        assert appended == []
        assert ids(local) == after_first

    def test_never_reorders_known_mail(self):
        local = [make_mail("m1"), make_mail("m2")]

        MailSynchronizer.merge(local, [make_mail("m2"), make_mail("m1")])

        assert ids(local) == ["m1", "m2"]

    def test_new_mail_goes_after_known_mail_in_remote_order(self):
        local = [make_mail("m1")]

        MailSynchronizer.merge(local, [make_mail("m3"), make_mail("m1"), make_mail("m2")])

        assert ids(local) == ["m1", "m3", "m2"]

    def test_never_removes_mail_missing_from_snapshot(self):
        local = [make_mail("m1"), make_mail("m2")]

        MailSynchronizer.merge(local, [make_mail("m3")])

        assert ids(local) == ["m1", "m2", "m3"]

    def test_empty_snapshot_changes_nothing(self):
        local = [make_mail("m1")]

        assert MailSynchronizer.merge(local, []) == []
        assert ids(local) == ["m1"]

    def test_duplicates_within_snapshot_added_once(self):
        local = []

        MailSynchronizer.merge(local, [make_mail("m1"), make_mail("m1")])

        assert ids(local) == ["m1"]

    def test_known_ids_are_a_subset_after_every_merge(self):
        local = [make_mail("m1")]
        snapshots = [
            [make_mail("m2")],
            [make_mail("m4"), make_mail("m2")],
            [],
            [make_mail("m1"), make_mail("m3")],
        ]

        for snapshot in snapshots:
            before = ids(local)
            MailSynchronizer.merge(local, snapshot)
            after = ids(local)
            assert set(before) <= set(after)
            # Known ids keep their relative order
            assert after[:len(before)] == before


class TestMergeResult:
    """Tests for MergeResult."""

    def test_unchanged_by_default(self):
        assert not MergeResult(address_id="a1").changed

    def test_changed_when_inserted_or_new_mail(self):
        assert MergeResult(address_id="a1", inserted=True).changed
        result = MergeResult(address_id="a1", new_mails=[make_mail("m1")])
        assert result.changed
        assert result.new_mail_ids == ["m1"]

    def test_registry_wraps_appended_mail(self, sample_address):
        registry = AddressRegistry()
        registry.upsert_address(sample_address)
        incoming = sample_address.snapshot()
        incoming.mails = [make_mail("m1"), make_mail("m2")]

        result = registry.upsert_address(incoming)

        assert isinstance(result, MergeResult)
        assert result.address_id == "a1"
        assert result.new_mail_ids == ["m2"]
        assert result.warnings == []
