"""Locale-partitioned lexicons of banned roots and the unified whitelist.

Locales:

* ``en``      English
* ``hi-Latn`` Hindi written in Latin script
* ``gu-Latn`` Gujarati written in Latin script
* ``hi``      Hindi in Devanagari
* ``gu``      Gujarati in Gujarati script

Case, letter spacing, leetspeak and stretched letters are handled by the
content filter's pattern battery; ``variants`` only lists spellings that
those transformations cannot reach (``fuk``, ``bhenchod``...).

Extension packs are YAML files of the form::

    entries:
      - term: badword
        locale: en
        category: insult
        variants: [b4dword]
    whitelist: [goodword]
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import yaml

from chatguard.errors import LexiconLoadError
from chatguard.moderation.models import LexiconEntry

LOCALES = ("en", "hi-Latn", "gu-Latn", "hi", "gu")


def _entries(locale: str, category: str, *specs: str | tuple) -> list[LexiconEntry]:
    """Expand compact specs: ``"term"`` or ``("term", (variants...), embedded)``."""
    out = []
    for spec in specs:
        if isinstance(spec, str):
            out.append(LexiconEntry(term=spec, locale=locale, category=category))
        else:
            term, variants, *rest = spec
            out.append(
                LexiconEntry(
                    term=term,
                    locale=locale,
                    category=category,
                    variants=tuple(variants),
                    embedded=bool(rest and rest[0]),
                )
            )
    return out


# ---------------------------------------------------------------------------
# Default lexicons
# ---------------------------------------------------------------------------

ENGLISH: list[LexiconEntry] = [
    *_entries(
        "en",
        "profanity",
        ("fuck", ("fuk", "fuq", "fukc", "fucc", "fck", "phuck", "f*ck", "f**k"), True),
        ("shit", ("shyt", "sh*t"), True),
        ("bitch", ("biatch", "b*tch"), True),
        ("motherfuck", ("mofo",), True),
        ("ass", ("arse",)),
        ("asshole", ("arsehole", "a**hole")),
        "dick",
        "pussy",
        "cock",
        "cunt",
        "bastard",
        "whore",
        "slut",
        "dumbass",
        "jackass",
        "douche",
        "douchebag",
        "scumbag",
        "bullshit",
        "pieceofshit",
    ),
    *_entries(
        "en",
        "hate",
        "nigger",
        "nigga",
        "faggot",
        "fag",
        "kike",
        "spic",
        "chink",
        "gook",
        "towelhead",
        "wetback",
        "beaner",
        "retard",
        "retarded",
    ),
    *_entries("en", "sexual", "porn", "boobs", "tits", "jerkoff"),
    *_entries("en", "violence", "rape", "rapist", "molest"),
    *_entries("en", "harassment", "kill yourself", "kys"),
    *_entries("en", "insult", "idiot", "moron"),
]

ABBREVIATIONS: list[LexiconEntry] = _entries("en", "abbreviation", "wtf", "stfu", "gtfo", "lmfao")

HINDI_LATIN: list[LexiconEntry] = _entries(
    "hi-Latn",
    "profanity",
    ("madarchod", ("maderchod", "madarchood"), True),
    ("behnchod", ("bhenchod", "benchod", "behenchod", "bhencho"), True),
    ("chutiya", ("chutiye", "chutiyo", "chutiyon", "chootiya"), True),
    ("chut", ("choot",)),
    ("lund", ("lauda", "lavda", "lawda")),
    "gaand",
    ("bhosda", ("bhosdi", "bhosdike", "bhosadi")),
    ("harami", ("haraami",)),
    ("randi", ("rundi",)),
    "behaya",
)

GUJARATI_LATIN: list[LexiconEntry] = _entries(
    "gu-Latn",
    "profanity",
    ("gaandu", ("gandu",)),
)

HINDI_NATIVE: list[LexiconEntry] = _entries(
    "hi",
    "profanity",
    "मादरचोद",
    "बहनचोद",
    "चूत",
    "लंड",
    "गांड",
    ("भोसड़ा", ("भोसडा",)),
    "हरामी",
    "रंडी",
    "चूतिया",
)

GUJARATI_NATIVE: list[LexiconEntry] = _entries(
    "gu",
    "profanity",
    "ગાંડુ",
    "ચૂત",
    "લંડ",
    "ભોસડા",
    "હરામી",
    "રંડી",
    "ચૂતિયા",
)

# English words that contain banned substrings.  Whitelisted words are never
# tested by any layer.
DEFAULT_WHITELIST: frozenset[str] = frozenset(
    {
        "assassin", "assassins", "assassination", "assassinate",
        "classic", "classical", "classify", "classification",
        "passion", "passionate", "passionately",
        "grass", "grassland", "grasshopper", "glass",
        "mass", "massive", "massively", "massacre",
        "bass", "brass", "class", "classroom",
        "assist", "assistant", "assistance",
        "pass", "passage", "passenger", "passport",
        "assemble", "assembly", "assembler",
        "assess", "assessment", "assessor",
        "assert", "assertion", "assertive",
        "assign", "assignment", "assignee",
        "associate", "association", "associative",
        "assume", "assumption", "assuming",
        "assure", "assurance", "assured",
        "cocktail", "peacock", "hancock", "dickens", "scunthorpe",
    }
)


# ---------------------------------------------------------------------------
# Lexicon
# ---------------------------------------------------------------------------


class Lexicon:
    """Banned roots grouped by locale, plus the whitelist that overrides them."""

    def __init__(
        self,
        entries: Iterable[LexiconEntry] = (),
        whitelist: Iterable[str] = (),
    ) -> None:
        self._entries: dict[tuple[str, str], LexiconEntry] = {}
        self._whitelist: set[str] = set()
        self.extend(entries)
        self.add_whitelist(whitelist)

    @classmethod
    def default(cls, include_abbreviations: bool = True) -> Lexicon:
        entries = [*ENGLISH, *HINDI_LATIN, *GUJARATI_LATIN, *HINDI_NATIVE, *GUJARATI_NATIVE]
        if include_abbreviations:
            entries.extend(ABBREVIATIONS)
        return cls(entries, DEFAULT_WHITELIST)

    # -- mutation ------------------------------------------------------------

    def extend(self, entries: Iterable[LexiconEntry]) -> None:
        for entry in entries:
            if entry.locale not in LOCALES:
                raise LexiconLoadError(f"Unknown locale {entry.locale!r} for term {entry.term!r}")
            if not entry.term.strip():
                raise LexiconLoadError("Lexicon terms must not be blank")
            self._entries[(entry.locale, entry.term.lower())] = entry

    def add_whitelist(self, words: Iterable[str]) -> None:
        self._whitelist.update(w.strip().lower() for w in words if w.strip())

    # -- queries -------------------------------------------------------------

    def entries(self, locale: str | None = None) -> list[LexiconEntry]:
        return [e for e in self._entries.values() if locale is None or e.locale == locale]

    @property
    def whitelist(self) -> frozenset[str]:
        return frozenset(self._whitelist)

    def is_whitelisted(self, word: str) -> bool:
        return word.lower() in self._whitelist

    def active_entries(self) -> list[LexiconEntry]:
        """Entries whose root is not itself whitelisted."""
        return [e for e in self._entries.values() if not self.is_whitelisted(e.term)]

    def library_words(self) -> list[str]:
        """Single-word ASCII surface forms, for the third-party profanity library."""
        words: dict[str, None] = {}
        for entry in self.active_entries():
            for form in entry.surface_forms:
                if form.isascii() and form.isalpha() and not self.is_whitelisted(form):
                    words.setdefault(form, None)
        return list(words)

    def __len__(self) -> int:
        return len(self._entries)


def load_lexicon_pack(path: str | Path) -> tuple[list[LexiconEntry], list[str]]:
    """Read an extension pack.  Raises :class:`LexiconLoadError` on any problem."""
    pack_path = Path(path)
    try:
        with open(pack_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise LexiconLoadError(f"Failed to load lexicon pack {pack_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise LexiconLoadError(f"Lexicon pack {pack_path} must be a mapping")

    entries = []
    for raw in data.get("entries", []) or []:
        if not isinstance(raw, dict) or "term" not in raw:
            raise LexiconLoadError(f"Malformed entry in {pack_path}: {raw!r}")
        entries.append(
            LexiconEntry(
                term=str(raw["term"]),
                locale=raw.get("locale", "en"),
                category=raw.get("category", "profanity"),
                variants=tuple(str(v) for v in raw.get("variants", []) or []),
                embedded=bool(raw.get("embedded", False)),
            )
        )
    whitelist = [str(w) for w in data.get("whitelist", []) or []]
    return entries, whitelist


def build_lexicon(
    additional_terms: dict[str, list[str]] | None = None,
    whitelist: Iterable[str] = (),
    lexicon_path: str | Path | None = None,
    include_abbreviations: bool = True,
) -> Lexicon:
    """Default lexicon extended with configured terms and an optional pack."""
    lexicon = Lexicon.default(include_abbreviations=include_abbreviations)
    for locale, terms in (additional_terms or {}).items():
        lexicon.extend(LexiconEntry(term=t, locale=locale, category="custom") for t in terms)
    lexicon.add_whitelist(whitelist)
    if lexicon_path:
        entries, extra_whitelist = load_lexicon_pack(lexicon_path)
        lexicon.extend(entries)
        lexicon.add_whitelist(extra_whitelist)
    return lexicon
