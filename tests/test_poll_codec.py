"""
Unit-тесты для кодирования опроса в строку URL.
"""
import base64
import json
from unittest.mock import patch
from urllib.parse import quote

import pytest

from src.models.poll import Answer, Candidate, PollRecord, Respondent
from src.services.poll_codec import decode_poll, encode_poll, poll_storage_key, poll_to_json

from tests.conftest import make_poll, make_slot


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def test_round_trip_preserves_record():
    poll = make_poll()

    assert decode_poll(encode_poll(poll)) == poll


def test_round_trip_unicode_and_optional_fields():
    poll = PollRecord(
        title="チーム会議 🎉 Встреча",
        candidates=[
            Candidate(date="2030-03-01", time_slots=[make_slot("s1"), make_slot("s2", label="夜")]),
        ],
        respondents=[Respondent(name="山田", answers=[Answer.NO, Answer.YES])],
    )

    decoded = decode_poll(encode_poll(poll))

    assert decoded == poll
    assert decoded.candidates[0].time_slots[0].label is None


def test_round_trip_legacy_record():
    poll = PollRecord(title="old", respondents=[], dates=["2025-01-01", "2025-01-02"])

    decoded = decode_poll(encode_poll(poll))

    assert decoded == poll
    assert decoded.dates == ["2025-01-01", "2025-01-02"]
    assert decoded.candidates == []


def test_encode_uses_wire_keys():
    data = json.loads(base64.b64decode(encode_poll(make_poll())).decode("utf-8"))

    assert set(data) == {"title", "candidates", "users"}
    slot = data["candidates"][0]["timeSlots"][0]
    assert slot == {"id": "a1", "startTime": "09:00", "endTime": "12:00", "label": "午前"}
    assert data["users"][0] == {"name": "Anna", "answers": ["○", "×", "○"]}


def test_encode_failure_returns_empty_string():
    with patch("src.services.poll_codec.poll_to_json", side_effect=ValueError("boom")):
        assert encode_poll(make_poll()) == ""


@pytest.mark.parametrize("value", [None, "", "   ", "\n\t"])
def test_decode_empty_input(value):
    assert decode_poll(value) is None


@pytest.mark.parametrize(
    "value",
    [
        "!!!not base64!!!",
        "%%%",
        "abcd",
        _b64("hello world, not json"),
        _b64("[1, 2, 3]"),
        _b64("123"),
    ],
)
def test_decode_garbage_returns_none(value):
    assert decode_poll(value) is None


def test_decode_truncated_base64_returns_none():
    encoded = encode_poll(make_poll())

    assert decode_poll(encoded[:-1]) is None
    assert decode_poll(encoded[: len(encoded) // 2 + 1]) is None


def test_decode_requires_all_top_level_keys():
    assert decode_poll(_b64(json.dumps({"title": "t", "users": []}))) is None
    assert decode_poll(_b64(json.dumps({"title": "t", "candidates": []}))) is None
    assert decode_poll(_b64(json.dumps({"candidates": [], "users": []}))) is None


def test_decode_accepts_dates_instead_of_candidates():
    decoded = decode_poll(_b64(json.dumps({"title": "t", "dates": ["2025-01-01"], "users": []})))

    assert decoded is not None
    assert decoded.dates == ["2025-01-01"]
    assert decoded.candidates == []


def test_decode_rejects_invalid_structure():
    bad_answer = {"title": "t", "candidates": [], "users": [{"name": "a", "answers": ["maybe"]}]}
    bad_slot = {"title": "t", "candidates": [{"date": "2025-01-01", "timeSlots": [{"id": "x"}]}], "users": []}

    assert decode_poll(_b64(json.dumps(bad_answer))) is None
    assert decode_poll(_b64(json.dumps(bad_slot))) is None


def test_decode_percent_encoded_legacy_link():
    payload = json.dumps({"title": "Встреча", "dates": ["2025-01-01", ""], "users": []}, ensure_ascii=False)

    decoded = decode_poll(quote(payload))

    assert decoded is not None
    assert decoded.title == "Встреча"
    assert decoded.dates == ["2025-01-01", ""]


def test_decode_strips_surrounding_whitespace():
    poll = make_poll()

    assert decode_poll(f"  {encode_poll(poll)}\n") == poll


def test_poll_to_json_omits_absent_optional_fields():
    data = json.loads(poll_to_json(PollRecord.empty()))

    assert data == {"title": "", "candidates": [], "users": []}


def test_poll_storage_key_strips_unsafe_characters():
    assert poll_storage_key("Team Meeting! 2025/01") == "time-hub-poll-TeamMeeting202501"
    assert poll_storage_key("a-b_c") == "time-hub-poll-a-b_c"
    assert poll_storage_key("チーム") == "time-hub-poll-"
    assert poll_storage_key(None) == "time-hub-poll-"
