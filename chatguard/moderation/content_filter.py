"""Local, synchronous content filter with length-preserving masking.

A message goes through, in order:

1. a fast path for empty or very short text;
2. whitelist shielding of the lower-cased working copy;
3. an exact-term pass over every lexicon surface form;
4. a pattern battery for obfuscation (spaced letters, stretched letters,
   embedded and mixed-case roots, leetspeak);
5. the ``better_profanity`` library, fed the same lexicon and whitelist;
6. a repetition heuristic for spam-like messages.

Every hit is a character span of the original text.  Masking replaces the
characters of each span with the placeholder and leaves everything else,
including case, punctuation and spacing, untouched.  The passes are run
again on the masked text until they find nothing new, so a masked message
always scans clean.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass

from better_profanity import Profanity

from chatguard.config import FilterConfig
from chatguard.moderation.language import (
    SCRIPT_WORD_CLASSES,
    WORD_CHARS,
    detect_language,
    script_of,
)
from chatguard.moderation.lexicon import Lexicon, build_lexicon
from chatguard.moderation.models import LexiconEntry, ModerationVerdict, VerdictSource

logger = logging.getLogger(__name__)

# Confidence (probability that the message is clean) assigned per kind of hit.
CONFIDENCE_LEXICON = 0.1
CONFIDENCE_OBFUSCATION = 0.2
CONFIDENCE_REPETITION = 0.5

_SHIELD = "\x00"
_SEPARATORS = r"[\s._\-]+"
_WORD_RE = re.compile(f"[{WORD_CHARS}]+")
_TOKEN_RE = re.compile(r"\S+")
_LIBRARY_TOKEN_RE = re.compile(r"[A-Za-z0-9@$*]+")

# Characters commonly typed in place of a letter.
LEET_SUBSTITUTIONS: dict[str, str] = {
    "a": "@4",
    "b": "8",
    "e": "3",
    "g": "9",
    "i": "1!|",
    "l": "1|",
    "o": "0",
    "s": "$5",
    "t": "7+",
    "z": "2",
}


@dataclass(frozen=True)
class _Hit:
    start: int
    end: int
    term: str
    category: str
    confidence: float


@dataclass(frozen=True)
class _PatternSet:
    """Compiled patterns for one instance, built on first use."""

    exact: list[re.Pattern[str]]
    forms: dict[str, LexiconEntry]
    obfuscation: list[tuple[re.Pattern[str], LexiconEntry]]
    stretched: re.Pattern[str]


def _letter_unit(ch: str) -> str:
    subs = LEET_SUBSTITUTIONS.get(ch, "")
    if not subs:
        return f"{re.escape(ch)}+"
    return f"(?:{re.escape(ch)}+|[{re.escape(subs)}])"


def _lower_preserving_length(text: str) -> str:
    return "".join(c.lower() if len(c.lower()) == 1 else c for c in text)


def mask_spans(text: str, spans: list[tuple[int, int]], placeholder: str = "*") -> str:
    """Replace every character covered by *spans* with *placeholder*."""
    if not spans:
        return text
    chars = list(text)
    for start, end in spans:
        for i in range(start, end):
            if not chars[i].isspace():
                chars[i] = placeholder
    return "".join(chars)


def warning_message(terms: list[str] | set[str] | frozenset[str]) -> str:
    """User-facing explanation of a rejection."""
    terms = sorted(terms)
    if not terms:
        return ""
    if len(terms) == 1:
        return f'Your message contains inappropriate language ("{terms[0]}"). Please revise your message.'
    return f"Your message contains {len(terms)} inappropriate words. Please revise your message."


class ContentFilter:
    """Lexicon and pattern based detector with masking.

    Compiled patterns and the profanity library instance are owned by the
    filter and built lazily on the first scan, so separate instances can
    carry separate lexicons.
    """

    def __init__(self, config: FilterConfig | None = None, lexicon: Lexicon | None = None) -> None:
        self.config = config or FilterConfig()
        self.config.validate()
        self.lexicon = lexicon or build_lexicon(
            additional_terms=self.config.additional_terms,
            whitelist=self.config.whitelist,
            lexicon_path=self.config.lexicon_path,
            include_abbreviations=self.config.filter_abbreviations,
        )
        self._patterns: _PatternSet | None = None
        self._profanity: Profanity | None = None

    # -- public API ----------------------------------------------------------

    def scan(self, text: str) -> ModerationVerdict:
        """Check *text* and return a verdict with a masked variant."""
        cfg = self.config
        if not text or not cfg.enabled or len(text.strip()) < cfg.min_length:
            return ModerationVerdict(
                is_clean=True,
                masked_text=text,
                detected_language=detect_language(text or ""),
                source=VerdictSource.LOCAL_FAST,
            )

        hits: list[_Hit] = []
        masked = text
        while True:
            found = self._find_hits(masked)
            if not found:
                break
            hits.extend(found)
            remasked = mask_spans(masked, [(h.start, h.end) for h in found], cfg.placeholder)
            if remasked == masked:
                break
            # A masked span is a new word boundary ("shit@ss" -> "****@ss").
            masked = remasked

        language = detect_language(text)
        if not hits:
            return ModerationVerdict(is_clean=True, masked_text=text, detected_language=language)

        category_scores: dict[str, float] = {}
        for hit in hits:
            score = round(1.0 - hit.confidence, 4)
            category_scores[hit.category] = max(category_scores.get(hit.category, 0.0), score)

        verdict = ModerationVerdict(
            is_clean=False,
            masked_text=masked,
            matched_terms=frozenset(h.term for h in hits),
            confidence=min(h.confidence for h in hits),
            detected_language=language,
            source=VerdictSource.LOCAL_LEXICON,
            category_scores=category_scores,
        )
        logger.info(
            "Local filter flagged message (%d chars, language=%s, categories=%s)",
            len(text),
            language,
            ",".join(sorted(category_scores)),
        )
        return verdict

    def mask(self, text: str) -> str:
        """Masked variant of *text* (unchanged when clean)."""
        return self.scan(text).masked_text

    def is_clean(self, text: str) -> bool:
        return self.scan(text).is_clean

    def detected_terms(self, text: str) -> list[str]:
        return sorted(self.scan(text).matched_terms)

    # -- lazily built state --------------------------------------------------

    @property
    def patterns(self) -> _PatternSet:
        if self._patterns is None:
            self._patterns = self._compile()
        return self._patterns

    @property
    def profanity(self) -> Profanity:
        if self._profanity is None:
            words = self.lexicon.library_words()
            if self.config.include_library_wordlist:
                engine = Profanity()
                engine.load_censor_words(whitelist_words=sorted(self.lexicon.whitelist))
                engine.add_censor_words(words)
            else:
                engine = Profanity(words)
            self._profanity = engine
        return self._profanity

    def _compile(self) -> _PatternSet:
        forms: dict[str, LexiconEntry] = {}
        for entry in self.lexicon.active_entries():
            for form in entry.surface_forms:
                if not self.lexicon.is_whitelisted(form):
                    forms.setdefault(" ".join(form.split()), entry)

        by_script: dict[str, list[str]] = {}
        for form in forms:
            by_script.setdefault(script_of(form), []).append(form)
        exact = []
        for script, script_forms in by_script.items():
            boundary = SCRIPT_WORD_CLASSES[script]
            alternation = "|".join(
                r"\s+".join(re.escape(part) for part in form.split())
                for form in sorted(script_forms, key=len, reverse=True)
            )
            exact.append(re.compile(f"(?<!{boundary})(?:{alternation})(?!{boundary})"))

        obfuscation = []
        for entry in self.lexicon.active_entries():
            root = entry.term.lower()
            if not (root.isascii() and root.isalpha() and len(root) >= 3):
                continue
            units = [_letter_unit(ch) for ch in root]
            spaced = _SEPARATORS.join(re.escape(ch) for ch in root)
            obfuscation.append((re.compile(rf"(?<!\w){spaced}(?!\w)", re.IGNORECASE), entry))
            disguised = "".join(units)
            if entry.embedded:
                disguised = rf"\w*{disguised}\w*"
            obfuscation.append((re.compile(rf"(?<![\w@$]){disguised}(?!\w)", re.IGNORECASE), entry))

        run = self.config.repeated_char_run - 1
        stretched = re.compile(rf"[^\W\d_]*([^\W\d_])\1{{{run},}}[^\W\d_]*")
        return _PatternSet(exact=exact, forms=forms, obfuscation=obfuscation, stretched=stretched)

    # -- passes --------------------------------------------------------------

    def _find_hits(self, text: str) -> list[_Hit]:
        cfg = self.config
        working = self._shield_whitelist(_lower_preserving_length(text))
        hits = self._exact_hits(working)
        if cfg.filter_obfuscation:
            hits.extend(self._obfuscation_hits(working))
        if cfg.use_profanity_library:
            hits.extend(self._library_hits(text, working))
        if cfg.filter_repetition:
            hits.extend(self._repetition_hits(working))
        return hits

    def _shield_whitelist(self, working: str) -> str:
        def shield(m: re.Match[str]) -> str:
            word = m.group(0)
            return _SHIELD * len(word) if self.lexicon.is_whitelisted(word) else word

        return _WORD_RE.sub(shield, working)

    def _exact_hits(self, working: str) -> list[_Hit]:
        patterns = self.patterns
        hits = []
        for pattern in patterns.exact:
            for m in pattern.finditer(working):
                entry = patterns.forms[" ".join(m.group(0).split())]
                hits.append(
                    _Hit(m.start(), m.end(), entry.term.lower(), entry.category, CONFIDENCE_LEXICON)
                )
        return hits

    def _obfuscation_hits(self, working: str) -> list[_Hit]:
        hits = []
        for pattern, entry in self.patterns.obfuscation:
            for m in pattern.finditer(working):
                if not any(c.isalpha() for c in m.group(0)):
                    # "455" is a number, not a disguised word
                    continue
                hits.append(
                    _Hit(m.start(), m.end(), entry.term.lower(), entry.category, CONFIDENCE_OBFUSCATION)
                )
        return hits

    def _library_hits(self, text: str, working: str) -> list[_Hit]:
        hits = []
        for m in _LIBRARY_TOKEN_RE.finditer(working):
            token = text[m.start():m.end()]
            if _SHIELD in m.group(0) or not any(c.isalpha() for c in token):
                continue
            if self.profanity.contains_profanity(token):
                term, category = self._library_term(token)
                hits.append(_Hit(m.start(), m.end(), term, category, CONFIDENCE_OBFUSCATION))
        return hits

    def _library_term(self, token: str) -> tuple[str, str]:
        """Lexicon root behind a token the library flagged, when there is one."""
        lowered = token.lower()
        patterns = self.patterns
        entry = patterns.forms.get(lowered)
        if entry is None:
            roots = [e for p, e in patterns.obfuscation if p.fullmatch(lowered)]
            entry = max(roots, key=lambda e: len(e.term), default=None)
        if entry is None:
            return lowered, "profanity"
        return entry.term.lower(), entry.category

    def _repetition_hits(self, working: str) -> list[_Hit]:
        cfg = self.config
        hits = []
        for m in self.patterns.stretched.finditer(working):
            hits.append(_Hit(m.start(), m.end(), m.group(0), "spam", CONFIDENCE_REPETITION))

        tokens = [
            m for m in _TOKEN_RE.finditer(working)
            if len(m.group(0)) > cfg.min_word_length_for_repetition
            and _SHIELD not in m.group(0)
            and any(c.isalnum() for c in m.group(0))
        ]
        counts = Counter(m.group(0) for m in tokens)
        for m in tokens:
            if counts[m.group(0)] > cfg.max_word_repetition:
                hits.append(_Hit(m.start(), m.end(), m.group(0), "spam", CONFIDENCE_REPETITION))
        return hits
