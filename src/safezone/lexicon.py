"""Trigger word set and transcript matching."""

from __future__ import annotations

from typing import Iterable, List, Optional

DEFAULT_TRIGGER_WORDS = ("help", "emergency", "sos")


def normalize_word(word: str) -> str:
    return (word or "").strip().casefold()


class TriggerLexicon:
    def __init__(self, words: Iterable[str] = ()) -> None:
        self._words: List[str] = []
        for word in words:
            self.add(word)

    def __len__(self) -> int:
        return len(self._words)

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and normalize_word(word) in self._words

    def words(self) -> List[str]:
        return list(self._words)

    def add(self, word: str) -> bool:
        """Insert ``word``; returns False for empty input or duplicates."""
        value = normalize_word(word)
        if not value or value in self._words:
            return False
        self._words.append(value)
        return True

    def remove(self, word: str) -> bool:
        value = normalize_word(word)
        if value not in self._words:
            return False
        self._words.remove(value)
        return True

    def matches(self, candidate_text: Optional[str]) -> Optional[str]:
        """Return the first stored word contained in ``candidate_text``."""
        if not candidate_text:
            return None
        text = candidate_text.casefold()
        for word in self._words:
            if word in text:
                return word
        return None
