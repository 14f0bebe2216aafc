"""Message Normalizer: tests for payload decoding, speaker markup and fallbacks.

Tests cover:
    - Native {"message", "source"} shape as JSON string and as dict
    - Plain text and non-JSON strings become AI text verbatim
    - Unknown source values fall back to AI
    - Whole-string speaker markup extraction (and partial markup ignored)
    - Never raises on odd inputs
"""

import json
from datetime import datetime

from coach.core.domain_types import MessageSource
from coach.core.normalize_message import extract_speaker, normalize_message

NOW = datetime(2026, 10, 19, 14, 5, 3)


# ─── Native shape ────────────────────────────────────────────────

def test_json_string_with_message_and_source_is_used_directly():
    msg = normalize_message(json.dumps({"message": "Hello", "source": "user"}), now=NOW)
    assert msg.text == "Hello"
    assert msg.source == MessageSource.USER
    assert msg.speaker_label is None


def test_dict_payload_is_used_directly():
    msg = normalize_message({"message": "Hi there", "source": "ai"}, now=NOW)
    assert msg.text == "Hi there"
    assert msg.source == MessageSource.AI


def test_unknown_source_falls_back_to_ai():
    msg = normalize_message({"message": "Hi", "source": "narrator"}, now=NOW)
    assert msg.source == MessageSource.AI


def test_non_string_message_is_json_encoded():
    msg = normalize_message({"message": {"a": 1}, "source": "ai"}, now=NOW)
    assert msg.text == '{"a": 1}'


# ─── Fallbacks ───────────────────────────────────────────────────

def test_plain_string_becomes_ai_text_verbatim():
    msg = normalize_message("just words", now=NOW)
    assert msg.text == "just words"
    assert msg.source == MessageSource.AI


def test_json_without_expected_keys_keeps_raw_string():
    raw = json.dumps({"text": "Hello"})
    msg = normalize_message(raw, now=NOW)
    assert msg.text == raw
    assert msg.source == MessageSource.AI


def test_non_string_non_dict_is_json_encoded_as_ai_text():
    msg = normalize_message([1, 2, 3], now=NOW)
    assert msg.text == "[1, 2, 3]"
    assert msg.source == MessageSource.AI


def test_unencodable_value_never_raises():
    msg = normalize_message(object(), now=NOW)
    assert msg.source == MessageSource.AI
    assert msg.text


def test_none_payload_never_raises():
    msg = normalize_message(None, now=NOW)
    assert msg.source == MessageSource.AI


# ─── Speaker markup ──────────────────────────────────────────────

def test_speaker_markup_sets_label_and_inner_text():
    msg = normalize_message({"message": "<Fiona>Let's plan the menu</Fiona>", "source": "ai"}, now=NOW)
    assert msg.speaker_label == "Fiona"
    assert msg.text == "Let's plan the menu"


def test_markup_in_plain_string_is_extracted():
    msg = normalize_message("<Eli>Pizza?</Eli>", now=NOW)
    assert msg.speaker_label == "Eli"
    assert msg.text == "Pizza?"


def test_partial_markup_is_left_alone():
    label, text = extract_speaker("Hello <Eli>there</Eli>")
    assert label is None
    assert text == "Hello <Eli>there</Eli>"


def test_markup_spanning_lines_is_extracted():
    label, text = extract_speaker("<Clara>one\ntwo</Clara>")
    assert label == "Clara"
    assert text == "one\ntwo"


def test_markup_round_trip():
    for label, body in [("Fiona", "Hi"), ("Eli", ""), ("Mr. Tan", "a < b")]:
        assert extract_speaker(f"<{label}>{body}</{label}>") == (label, body)


# ─── Message fields ──────────────────────────────────────────────

def test_timestamp_is_wall_clock_hh_mm_ss():
    assert normalize_message("x", now=NOW).timestamp == "14:05:03"


def test_color_tag_follows_source():
    assert normalize_message({"message": "a", "source": "ai"}).color_tag == "bg-blue-500"
    assert normalize_message({"message": "a", "source": "user"}).color_tag == "bg-green-500"


def test_identical_payloads_get_distinct_ids():
    a = normalize_message("same", now=NOW)
    b = normalize_message("same", now=NOW)
    assert a.id != b.id
