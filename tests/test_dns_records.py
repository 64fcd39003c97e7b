"""
Tests for the DNS record model and diff.
"""

import pytest

from dns_records import (
    ExistingRecordSet,
    ForwardRecord,
    ReverseRecord,
    diff_records,
    is_ipv4,
    normalize_domain,
    record_from_api,
    reverse_name,
    short_hostname,
)


def existing_a(name, address, ttl=301):
    return ExistingRecordSet(ForwardRecord(name, address), ttl, (address,))


class TestHelpers:
    """Tests for the small pure helpers."""

    def test_reverse_name(self):
        assert reverse_name("10.88.10.55") == "55.10.88.10.in-addr.arpa."

    @pytest.mark.parametrize("domain", ["multicloud.internal", "multicloud.internal.", " multicloud.internal ", "MultiCloud.Internal"])
    def test_normalize_domain(self, domain):
        assert normalize_domain(domain) == "multicloud.internal."

    @pytest.mark.parametrize("value,expected", [
        ("10.1.1.5", True),
        ("255.255.255.255", True),
        ("10.1.1", False),
        ("10.1.1.256", False),
        ("fe80::1", False),
        ("", False),
        (None, False),
    ])
    def test_is_ipv4(self, value, expected):
        assert is_ipv4(value) is expected

    def test_short_hostname_strips_guest_domain(self):
        assert short_hostname("web1.corp.example.com") == "web1"
        assert short_hostname("web1") == "web1"
        assert short_hostname("web1.") == "web1"
        assert short_hostname("WEB1.Corp.example.com") == "web1"

    def test_record_variants_carry_their_type(self):
        assert ForwardRecord("a.example.com.", "10.0.0.1").record_type == "A"
        assert ReverseRecord("1.0.0.10.in-addr.arpa.", "a.example.com.").record_type == "PTR"
        assert ForwardRecord("a.example.com.", "10.0.0.1").rrdatas == ["10.0.0.1"]

    def test_record_from_api(self):
        assert record_from_api("a.", "A", ["10.0.0.1"]) == ForwardRecord("a.", "10.0.0.1")
        assert record_from_api("1.in-addr.arpa.", "PTR", ["a."]) == ReverseRecord("1.in-addr.arpa.", "a.")
        assert record_from_api("a.", "CNAME", ["b."]) is None


class TestDiffRecords:
    """Tests for diff_records."""

    def test_changed_address_is_replaced(self):
        desired = [ForwardRecord("web1.example.com.", "10.1.1.5")]
        existing = [existing_a("web1.example.com.", "10.1.1.9")]

        changes = diff_records(desired, existing, ttl=301)

        assert changes.deletions == existing
        assert changes.additions == desired

    def test_matching_record_is_left_alone(self):
        desired = [ForwardRecord("web1.example.com.", "10.1.1.5")]
        existing = [existing_a("web1.example.com.", "10.1.1.5")]

        changes = diff_records(desired, existing, ttl=301)

        assert changes.empty

    def test_ttl_change_forces_replace(self):
        desired = [ForwardRecord("web1.example.com.", "10.1.1.5")]
        existing = [existing_a("web1.example.com.", "10.1.1.5", ttl=60)]

        changes = diff_records(desired, existing, ttl=301)

        assert len(changes.deletions) == 1
        assert len(changes.additions) == 1

    def test_unrelated_existing_records_untouched(self):
        desired = [ForwardRecord("web1.example.com.", "10.1.1.5")]
        existing = [existing_a("db1.example.com.", "10.1.1.7")]

        changes = diff_records(desired, existing, ttl=301)

        assert changes.deletions == []
        assert changes.additions == desired

    def test_purge_only_removes_every_named_record_and_adds_nothing(self):
        desired = [
            ForwardRecord("web1.example.com.", "10.1.1.5"),
            ForwardRecord("web2.example.com.", "10.1.1.6"),
        ]
        existing = [
            existing_a("web1.example.com.", "10.1.1.5"),
            existing_a("web2.example.com.", "10.1.1.99"),
            existing_a("db1.example.com.", "10.1.1.7"),
        ]

        changes = diff_records(desired, existing, ttl=301, purge_only=True)

        assert [e.name for e in changes.deletions] == ["web1.example.com.", "web2.example.com."]
        assert changes.additions == []

    def test_duplicate_desired_names_first_wins(self):
        desired = [
            ForwardRecord("web1.example.com.", "10.1.1.5"),
            ForwardRecord("web1.example.com.", "10.1.1.6"),
        ]

        changes = diff_records(desired, [], ttl=301)

        assert changes.additions == [ForwardRecord("web1.example.com.", "10.1.1.5")]

    def test_second_pass_after_apply_is_empty(self):
        desired = [ForwardRecord("web1.example.com.", "10.1.1.5")]
        first = diff_records(desired, [existing_a("web1.example.com.", "10.1.1.9")], ttl=301)
        after_apply = [
            ExistingRecordSet(record, 301, tuple(record.rrdatas)) for record in first.additions
        ]

        assert diff_records(desired, after_apply, ttl=301).empty

    def test_existing_name_in_other_case_matches(self):
        desired = [ForwardRecord("web1.example.com.", "10.1.1.5")]
        existing = [existing_a("WEB1.Example.com.", "10.1.1.5")]

        assert diff_records(desired, existing, ttl=301).empty

    def test_existing_name_in_other_case_with_stale_data_is_replaced(self):
        desired = [ForwardRecord("web1.example.com.", "10.1.1.5")]
        existing = [existing_a("WEB1.example.com.", "10.1.1.9")]

        changes = diff_records(desired, existing, ttl=301)

        assert changes.deletions == existing
        assert changes.additions == desired
