import datetime

from modwarden.datatypes.warning_datatypes import InfractionEntry, Severity
from modwarden.warnings.expiry import filter_active

NOW = datetime.datetime(2025, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


def _entry(days_ago: float, reason: str = "spam") -> InfractionEntry:
    return InfractionEntry(reason=reason, severity=Severity.LOW, occurred_at=NOW - datetime.timedelta(days=days_ago))


def test_zero_retention_keeps_everything() -> None:
    entries = [_entry(400), _entry(1)]

    result = filter_active(entries, 0, NOW)

    assert result == entries
    assert result is not entries


def test_negative_retention_disables_expiry() -> None:
    entries = [_entry(1000)]
    assert filter_active(entries, -5, NOW) == entries


def test_drops_entries_older_than_window_and_keeps_order() -> None:
    old = _entry(61, "old")
    recent = _entry(10, "recent")
    newest = _entry(0, "newest")

    result = filter_active([old, recent, newest], 60, NOW)

    assert [entry.reason for entry in result] == ["recent", "newest"]


def test_entry_exactly_on_cutoff_is_kept() -> None:
    boundary = _entry(60, "boundary")
    assert filter_active([boundary], 60, NOW) == [boundary]


def test_unparseable_timestamp_counts_as_expired() -> None:
    broken = InfractionEntry(reason="x", severity=Severity.HIGH, occurred_at=None, raw_timestamp="yesterday")
    kept = _entry(1)

    assert filter_active([broken, kept], 30, NOW) == [kept]


def test_unparseable_timestamp_survives_when_expiry_disabled() -> None:
    broken = InfractionEntry(reason="x", severity=Severity.HIGH, occurred_at=None, raw_timestamp="yesterday")
    assert filter_active([broken], 0, NOW) == [broken]


def test_later_now_never_grows_the_result() -> None:
    entries = [_entry(days) for days in (0, 5, 20, 29, 31, 90)]
    previous = len(filter_active(entries, 30, NOW))

    for step in range(1, 40):
        current = len(filter_active(entries, 30, NOW + datetime.timedelta(days=step)))
        assert current <= previous
        previous = current
