"""Tests for the event record and composite key."""

from datetime import datetime, timedelta, timezone

import pytest

from shared.events.models import Event, EventKey, community_prefix


class TestEventKey:
    """Tests for flat key encoding."""

    def test_plain_key_encodes_with_separator(self):
        """Ordinary ids join with a single colon."""
        assert EventKey("1234", "coffee").encode() == "1234:coffee"

    def test_decode_reverses_encode(self):
        key = EventKey("42", "deploy")

        assert EventKey.decode(key.encode()) == key

    @pytest.mark.parametrize(
        "community_id,name",
        [
            ("a:b", "c"),
            ("a", "b:c"),
            ("%3A", "x"),
            ("guild", "100%"),
            ("g", "%25:%3A"),
        ],
    )
    def test_separator_and_escape_characters_survive(self, community_id, name):
        """Colons and percent signs in either part decode back unchanged."""
        key = EventKey(community_id, name)

        assert EventKey.decode(key.encode()) == key

    def test_colon_placement_does_not_collide(self):
        """Moving a colon between the two parts yields distinct keys."""
        left = EventKey("a:b", "c").encode()
        right = EventKey("a", "b:c").encode()

        assert left != right

    def test_decode_rejects_flat_strings_without_one_separator(self):
        with pytest.raises(ValueError):
            EventKey.decode("no-separator")
        with pytest.raises(ValueError):
            EventKey.decode("a:b:c")

    def test_community_prefix_excludes_longer_ids(self):
        """Guild "12" does not own keys of guild "123"."""
        key = EventKey("123", "x").encode()

        assert not key.startswith(community_prefix("12"))
        assert key.startswith(community_prefix("123"))

    def test_community_prefix_of_id_containing_colon(self):
        """A guild id ending in a colon cannot claim another guild's keys."""
        other = EventKey("a", "b").encode()

        assert not other.startswith(community_prefix("a:"))


class TestEventDaysSince:
    """Tests for elapsed-day computation."""

    def test_same_instant_is_zero(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert Event("x", now).days_since(now) == 0

    def test_partial_days_are_truncated(self):
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert Event("x", since).days_since(since + timedelta(days=2, hours=23)) == 2

    def test_future_timestamp_truncates_toward_zero(self):
        """Negative elapsed time passes through, truncated toward zero."""
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        event = Event("x", now + timedelta(days=1, hours=12))

        assert event.days_since(now) == -1

    def test_naive_datetimes_are_treated_as_utc(self):
        event = Event("x", datetime(2024, 1, 1))

        assert event.since.tzinfo == timezone.utc
        assert event.days_since(datetime(2024, 1, 4, tzinfo=timezone.utc)) == 3


class TestEventTransitions:
    def test_with_description_keeps_since(self):
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)

        updated = Event("old", since).with_description("new")

        assert updated == Event("new", since)

    def test_reset_keeps_description(self):
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)
        now = since + timedelta(days=9)

        assert Event("text", since).reset(now) == Event("text", now)


class TestEventSerialization:
    def test_json_preserves_microseconds(self):
        event = Event("desc", datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc))

        assert Event.from_json(event.to_json()) == event

    def test_non_utc_offsets_normalize_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        event = Event("desc", datetime(2024, 1, 1, 2, 0, tzinfo=plus_two))

        assert event.since == datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"description": "x"},
            {"since": "2024-01-01T00:00:00+00:00"},
            {"description": 1, "since": "2024-01-01T00:00:00+00:00"},
        ],
    )
    def test_malformed_payloads_raise_value_error(self, payload):
        with pytest.raises(ValueError):
            Event.from_dict(payload)

    def test_invalid_json_raises_value_error(self):
        with pytest.raises(ValueError):
            Event.from_json("{not json")

    def test_non_string_record_raises_value_error(self):
        """A record stored as a JSON object rather than text is malformed."""
        with pytest.raises(ValueError):
            Event.from_json({"description": "x", "since": "2024-01-01T00:00:00+00:00"})
