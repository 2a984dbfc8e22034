"""Match spoken words against the active shopping list."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from models import CheckoffResult, ShoppingItem

logger = logging.getLogger(__name__)

MIN_PARTIAL_WORD_LENGTH = 3

_WORD_RE = re.compile(r"[\w'%]+")


def _tokenize(transcript: str) -> list[str]:
    return _WORD_RE.findall(transcript.lower().replace("\u2019", "'"))


def item_matches(item_name: str, spoken_words: list[str]) -> bool:
    name = item_name.lower()
    name_words = name.split()
    for word in spoken_words:
        if word in name_words:
            return True
        if len(word) >= MIN_PARTIAL_WORD_LENGTH and word in name:
            return True
        if " " in name and name in word:
            return True
    return False


class CheckoffMatcher:
    """Decides which incomplete items a shopping-mode utterance refers to."""

    def find_matches(self, transcript: str, items: Iterable[ShoppingItem]) -> list[ShoppingItem]:
        spoken = _tokenize(transcript)
        if not spoken:
            return []
        return [item for item in items if not item.completed and item_matches(item.name, spoken)]

    def apply(self, transcript: str, items: list[ShoppingItem]) -> CheckoffResult:
        """Complete every matched item in one batch.

        ``all_complete`` is true only when this batch is what finished the
        list, so repeated or empty updates never report it again.
        """
        matched = self.find_matches(transcript, items)
        if not matched:
            return CheckoffResult()
        # A non-empty match means at least one item was still open.
        for item in matched:
            item.completed = True
        logger.debug("checked off %s", [item.name for item in matched])
        return CheckoffResult(
            completed=matched,
            all_complete=all(item.completed for item in items),
        )
