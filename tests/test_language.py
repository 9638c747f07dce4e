"""Tests for script-based language detection."""

from chatguard.moderation.language import detect_language, script_counts


def test_plain_english():
    assert detect_language("Hello there") == "en"


def test_devanagari():
    assert detect_language("नमस्ते दोस्त") == "hi"


def test_gujarati():
    assert detect_language("કેમ છો") == "gu"


def test_romanized_hindi_is_latin():
    assert detect_language("kya haal hai") == "en"


def test_empty_and_symbols_default_to_english():
    assert detect_language("") == "en"
    assert detect_language("123 !!! ???") == "en"


def test_plurality_wins():
    assert detect_language("ok नमस्ते") == "hi"
    assert detect_language("hello world કેમ") == "en"


def test_tie_defaults_to_english():
    counts = script_counts("ab कख")
    assert counts["en"] == counts["hi"] == 2
    assert detect_language("ab कख") == "en"


def test_script_counts():
    counts = script_counts("Hi કેમ नम")
    assert counts == {"hi": 2, "gu": 3, "en": 2}
