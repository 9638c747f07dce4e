"""Script-based language detection for chat messages."""

from __future__ import annotations

ENGLISH = "en"
HINDI = "hi"
GUJARATI = "gu"

LANGUAGE_NAMES: dict[str, str] = {
    ENGLISH: "English",
    HINDI: "Hindi",
    GUJARATI: "Gujarati",
}

DEVANAGARI_RANGE = ("\u0900", "\u097f")
GUJARATI_RANGE = ("\u0a80", "\u0aff")

# Characters that belong to words, for boundary-aware matching across scripts.
WORD_CHARS = r"\w\u0900-\u097f\u0a80-\u0aff"

# Word characters of a single script.  A term is bounded only by letters of
# its own script, so a Gujarati word glued to a Latin one is still a word.
SCRIPT_WORD_CLASSES: dict[str, str] = {
    ENGLISH: r"[^\W\u0900-\u097f\u0a80-\u0aff]",
    HINDI: r"[\u0900-\u0963\u0966-\u097f]",  # danda and double danda are punctuation
    GUJARATI: r"[\u0a80-\u0aff]",
}


def script_counts(text: str) -> dict[str, int]:
    """Count Devanagari, Gujarati and Latin letters in *text*."""
    counts = {HINDI: 0, GUJARATI: 0, ENGLISH: 0}
    for ch in text:
        if GUJARATI_RANGE[0] <= ch <= GUJARATI_RANGE[1]:
            counts[GUJARATI] += 1
        elif DEVANAGARI_RANGE[0] <= ch <= DEVANAGARI_RANGE[1]:
            counts[HINDI] += 1
        elif ("a" <= ch <= "z") or ("A" <= ch <= "Z"):
            counts[ENGLISH] += 1
    return counts


def script_of(word: str) -> str:
    """Locale tag of the script *word* is written in (Latin unless Indic)."""
    for ch in word:
        if GUJARATI_RANGE[0] <= ch <= GUJARATI_RANGE[1]:
            return GUJARATI
        if DEVANAGARI_RANGE[0] <= ch <= DEVANAGARI_RANGE[1]:
            return HINDI
    return ENGLISH


def detect_language(text: str) -> str:
    """Return the locale tag of the script with a strict plurality.

    Ties and text without any counted characters fall back to ``"en"``.
    """
    counts = script_counts(text or "")
    gu, hi, en = counts[GUJARATI], counts[HINDI], counts[ENGLISH]
    if gu > hi and gu > en:
        return GUJARATI
    if hi > gu and hi > en:
        return HINDI
    return ENGLISH
