# melbox/utils/test_datetime_utils.py
"""
Tests for the shared date/time helpers.

Usage: python -m pytest melbox/utils/test_datetime_utils.py -v
"""

from datetime import datetime, date, timezone, timedelta
from melbox.utils.datetime_utils import DateTimeUtils

def test_now_is_utc_aware():
    assert DateTimeUtils.now().tzinfo == timezone.utc

def test_to_iso_string_keeps_microseconds():
    """Pagination cursors travel as ISO strings and must survive the trip exactly."""
    original = datetime(2024, 3, 1, 8, 15, 30, 123456, tzinfo=timezone.utc)
    text = DateTimeUtils.to_iso_string(original)
    assert text == "2024-03-01T08:15:30.123456Z"
    assert datetime.fromisoformat(text.replace('Z', '+00:00')) == original

def test_to_iso_string_normalizes_offset():
    kst = timezone(timedelta(hours=9))
    dt = datetime(2024, 1, 15, 19, 30, tzinfo=kst)
    assert DateTimeUtils.to_iso_string(dt) == "2024-01-15T10:30:00Z"
    assert DateTimeUtils.to_iso_string(datetime(2024, 1, 15, 10, 30)) == "2024-01-15T10:30:00Z"

def test_for_firestore():
    test_data = {
        'party_date': date(2024, 6, 1),
        'timestamp': datetime(2024, 1, 15, 10, 30),
        'nested': {
            'event_date': date(2023, 12, 25)
        },
        'list_data': [
            {'created_at': datetime(2024, 1, 1)}
        ]
    }

    converted = DateTimeUtils.for_firestore(test_data)

    assert isinstance(converted['party_date'], datetime)
    assert isinstance(converted['nested']['event_date'], datetime)
    assert isinstance(converted['list_data'][0]['created_at'], datetime)
    assert converted['party_date'].tzinfo == timezone.utc
    assert converted['timestamp'].tzinfo == timezone.utc

def test_from_firestore_normalizes_naive_values():
    data = {'created_at': datetime(2024, 1, 1, 12, 0), 'content': 'hi', 'tags': [datetime(2024, 1, 2)]}
    converted = DateTimeUtils.from_firestore(data)
    assert converted['created_at'].tzinfo == timezone.utc
    assert converted['tags'][0].tzinfo == timezone.utc
    assert converted['content'] == 'hi'
