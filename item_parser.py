"""Turn a buffered natural-speech transcript into grocery list items.

The pipeline is a pure function of the transcript, the catalog and the names
already on the list:

1. lowercase and trim
2. drop filler phrases ("i need", "get me", ...)
3. split on separator categories, each applied across every fragment so far
4. whitespace fallback for a single unseparated fragment, keeping compounds
5. per-fragment cleanup (articles, trailing punctuation, whitespace)
6. quantity/unit extraction
7. filtering (length, stop words, catalog validation)
8. canonical naming through the catalog
9. de-duplication against the list and within the batch
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from catalog import ItemCatalog, default_catalog
from models import ParseResult, ShoppingItem

logger = logging.getLogger(__name__)

FILLER_PHRASES = (
    "i need", "i want", "get me", "buy", "purchase", "pick up",
    "we need", "let me get", "can you add", "add to the list",
    "put on the list", "write down", "remember to get",
)

# Order matters: each pattern is applied to all fragments produced so far.
SEPARATORS = tuple(
    re.compile(pattern)
    for pattern in (
        # conjunctions
        r"\s+and\s+",
        r"\s+also\s+",
        r"\s+plus\s+",
        r"\s+as well as\s+",
        r"\s+along with\s+",
        # sequencing
        r"\s+then\s+",
        r"\s+next\s+",
        r"\s+after that\s+",
        # quantity transitions
        r"\s+some\s+",
        r"\s+a few\s+",
        r"\s+couple of\s+",
        # punctuation
        r",\s*",
        r";\s*",
        # a number starting the next item
        r"\s+(?=\d+\s+)",
        # pauses
        r"\.{2,}",
        r"\s{3,}",
    )
)

COMPOUND_PHRASES = frozenset({
    "ice cream", "olive oil", "peanut butter", "orange juice", "apple juice",
    "ground beef", "chicken breast", "hot dogs", "potato chips", "corn flakes",
    "green beans", "sweet potato", "bell pepper", "black beans", "brown rice",
    "whole wheat", "greek yogurt", "coconut milk", "almond milk", "soy sauce",
    "maple syrup", "baking soda", "vanilla extract", "cream cheese", "cottage cheese",
    "hand soap", "toilet paper", "paper towels",
})

WORD_NUMBERS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

SPECIAL_QUANTITIES = {"a dozen": 12, "a pair": 2, "a few": 3}

UNIT_WORDS = (
    "lb", "lbs", "pound", "pounds", "oz", "ounce", "ounces", "kg", "kilo", "kilos",
    "g", "gram", "grams", "gallon", "gallons", "liter", "liters", "litre", "litres",
    "pack", "packs", "bag", "bags", "box", "boxes", "can", "cans", "bottle", "bottles",
    "jar", "jars", "bunch", "bunches", "loaf", "loaves", "carton", "cartons",
)

STOP_WORDS = frozenset({
    # articles & determiners
    "a", "an", "the", "this", "that", "these", "those", "my", "your", "our",
    # conjunctions
    "and", "or", "but", "so", "yet", "for", "nor",
    # prepositions
    "of", "to", "in", "on", "at", "by", "with", "without", "from",
    "up", "down", "over", "under", "above", "below", "between", "through",
    # common speech verbs
    "was", "were", "is", "are", "am", "be", "been", "being", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "might",
    "can", "get", "getting", "got", "need", "needed", "want", "wanted",
    "buy", "buying", "bought", "pick", "picking", "picked", "take", "taking",
    "took", "put", "putting", "add", "adding", "added", "go", "going", "went",
    # thinking and filler
    "um", "uh", "er", "ah", "well", "like", "you know", "i mean", "actually",
    "basically", "literally", "really", "very", "quite", "pretty", "sort of",
    "kind of", "thinking", "thought", "think", "about", "maybe", "perhaps",
    # pronouns
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
    # adverbs and standalone quantity words
    "also", "too", "rather", "more", "most", "less", "least", "much", "many",
    "few", "little", "enough", "too much", "some", "any", "all", "every", "each",
    "both", "either", "neither", "several",
    # time and sequence
    "now", "then", "next", "first", "second", "last", "finally", "after",
    "before", "during", "while", "when", "where", "why", "how",
    # completion and conversational phrases
    "lets see", "let's see", "let me see", "what else", "thats it", "that's it",
    "that is it", "im done", "i'm done", "i am done", "thats all", "that's all",
    "that is all", "nothing else", "no more", "stop", "finish", "end",
    "complete", "done", "okay", "alright", "right",
})

FINISH_PHRASES = (
    "that's it", "thats it", "that is it", "that's all", "thats all", "that is all",
    "i'm done", "im done", "i am done", "list complete", "done", "stop", "finish",
)

_FINISH_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(phrase) for phrase in FINISH_PHRASES) + r")\b"
)
_QUANTITY_PREFIX_RE = re.compile(
    r"^(?:\d|(?:" + "|".join(WORD_NUMBERS) + r")\b|a\s+(?:dozen|pair|few)\b)"
)
_ARTICLE_RE = re.compile(r"^(?:a|an|the)\s+")
_TRAILING_PUNCT_RE = re.compile(r"[.,!?]+$")
_NUMERIC_RE = re.compile(r"^(\d+(?:\.\d+)?)([a-z]*)\s+(.+)$")
_SPACED_UNIT_RE = re.compile(r"^(" + "|".join(UNIT_WORDS) + r")\s+(.+)$")
_WORD_NUMBER_RE = re.compile(r"^(" + "|".join(WORD_NUMBERS) + r")\s+(.+)$")
_SPECIAL_RE = re.compile(r"^(a\s+dozen|a\s+pair|a\s+few)\s+(.+)$")
_LEADING_OF_RE = re.compile(r"^of\s+")


def _normalize_apostrophes(text: str) -> str:
    return text.replace("’", "'").replace("‘", "'")


def find_finish_phrase(text: str) -> Optional[re.Match[str]]:
    """Locate a list-completion phrase ("that's it", "done", ...) in ``text``."""
    return _FINISH_RE.search(_normalize_apostrophes(text.lower()))


def _strip_of(name: str) -> str:
    return _LEADING_OF_RE.sub("", name).strip()


def _quantity_result(
    quantity: float, unit: Optional[str], rest: str
) -> tuple[Optional[float], Optional[str], str]:
    if unit is None:
        spaced = _SPACED_UNIT_RE.match(rest)
        if spaced:
            unit, rest = spaced.group(1), spaced.group(2)
    if quantity <= 0:
        # "0 apples" still names the item, the count is meaningless
        return None, None, _strip_of(rest)
    return quantity, unit, _strip_of(rest)


def extract_quantity(fragment: str) -> tuple[Optional[float], Optional[str], str]:
    """Split ``fragment`` into ``(quantity, unit, name)``.

    Rules are tried in order and the first match wins: a leading number with
    an optional attached (``1.5lb``) unit, a word numeral one..ten, then
    "a dozen" / "a pair" / "a few". A known unit word may follow any of the
    numbers (``2 lbs of``, ``two pounds of``). Only positive quantities are
    kept.
    """
    match = _NUMERIC_RE.match(fragment)
    if match:
        return _quantity_result(float(match.group(1)), match.group(2) or None, match.group(3))

    match = _WORD_NUMBER_RE.match(fragment)
    if match:
        return _quantity_result(float(WORD_NUMBERS[match.group(1)]), None, match.group(2))

    match = _SPECIAL_RE.match(fragment)
    if match:
        phrase = " ".join(match.group(1).split())
        return _quantity_result(float(SPECIAL_QUANTITIES[phrase]), None, match.group(2))

    return None, None, fragment


def _display_name(name: str) -> str:
    return name[:1].upper() + name[1:]


class ItemParser:
    def __init__(self, catalog: Optional[ItemCatalog] = None) -> None:
        self._catalog = catalog or default_catalog()
        self._compounds = COMPOUND_PHRASES | frozenset(
            entry.name for entry in self._catalog.entries if entry.name.count(" ") == 1
        )

    @property
    def catalog(self) -> ItemCatalog:
        return self._catalog

    def parse(self, transcript: str, existing_names: Iterable[str] = ()) -> ParseResult:
        normalized = self._normalize(transcript)
        if not normalized:
            return ParseResult()

        fragments = self._segment(normalized)
        logger.debug("segmented %r into %s", normalized, fragments)

        seen = {name.lower() for name in existing_names}
        items: list[ShoppingItem] = []
        recognized = False
        for raw in fragments:
            fragment = self._clean(raw)
            quantity, unit, name = extract_quantity(fragment)
            name = name.strip()
            if not self._accept(fragment, name):
                continue
            recognized = True
            canonical = _display_name(self._catalog.best_match(name) or name)
            key = canonical.lower()
            if key in seen:
                continue
            seen.add(key)
            items.append(ShoppingItem(name=canonical, quantity=quantity, unit=unit))
        return ParseResult(items=items, recognized=recognized)

    def _normalize(self, transcript: str) -> str:
        text = _normalize_apostrophes((transcript or "").lower().strip())
        for filler in FILLER_PHRASES:
            escaped = re.escape(filler)
            text = re.sub(rf"^{escaped}\s+", "", text)
            text = re.sub(rf"\s+{escaped}\s+", " ", text)
        return text.strip()

    def _segment(self, text: str) -> list[str]:
        fragments = [text]
        for separator in SEPARATORS:
            fragments = [
                part
                for fragment in fragments
                for part in separator.split(fragment)
                if part.strip()
            ]
        if len(fragments) == 1 and " " in fragments[0].strip():
            fragments = self._split_words(fragments[0])
        return fragments

    def _split_words(self, fragment: str) -> list[str]:
        """Whitespace fallback for one unseparated fragment.

        A fragment that already names a single catalog item ("2 apples",
        "whole milk") is kept whole. Otherwise adjacent word pairs forming a
        compound stay together and a leading quantity, with its unit, binds to
        its item.
        """
        cleaned = self._clean(fragment)
        _, _, name = extract_quantity(cleaned)
        if name in self._catalog:
            return [fragment]

        words = fragment.split()
        pieces: list[str] = []
        i = 0
        while i < len(words):
            prefix = ""
            if (words[i][0].isdigit() or words[i] in WORD_NUMBERS) and i + 1 < len(words):
                prefix = words[i] + " "
                i += 1
                if words[i] in UNIT_WORDS and i + 1 < len(words):
                    prefix += words[i] + " "
                    i += 1
                if words[i] == "of" and i + 1 < len(words):
                    prefix += "of "
                    i += 1
            if i + 1 < len(words) and f"{words[i]} {words[i + 1]}" in self._compounds:
                pieces.append(prefix + f"{words[i]} {words[i + 1]}")
                i += 2
                continue
            pieces.append(prefix + words[i])
            i += 1
        return pieces

    def _clean(self, fragment: str) -> str:
        cleaned = fragment.strip()
        if not _QUANTITY_PREFIX_RE.match(cleaned):
            cleaned = _ARTICLE_RE.sub("", cleaned)
        cleaned = _TRAILING_PUNCT_RE.sub("", cleaned)
        return " ".join(cleaned.split())

    def _accept(self, fragment: str, name: str) -> bool:
        if len(fragment) < 2 or len(name) < 2:
            return False
        if fragment in STOP_WORDS or name in STOP_WORDS:
            return False
        return self._catalog.is_valid(name)
