"""Lexicon - Static reference word set for validity and suggestions"""
import logging
from typing import Iterable, Optional, Tuple
from config import settings

logger = logging.getLogger(__name__)

# Common English words plus signing vocabulary
DEFAULT_WORDS = [
    "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HER", "WAS", "ONE", "OUR",
    "HAD", "BY", "WORD", "OIL", "SIT", "SET", "RUN", "EAT", "FAR", "SEA", "EYE", "WHO", "ITS",
    "NOW", "FIND", "LONG", "DOWN", "DAY", "DID", "GET", "HAS", "HIM", "HIS", "HOW",
    "MAY", "NEW", "OLD", "SEE", "TWO", "WAY", "BOY", "LET",
    "PUT", "SAY", "SHE", "TOO", "USE", "HELLO", "WORLD", "LOVE", "HELP", "GOOD", "TIME", "WORK",
    "LIFE", "HAND", "SIGN", "TALK", "HEAR", "DEAF", "SPEAK", "LEARN", "TEACH", "FRIEND",
]


class Lexicon:
    """
    Case-insensitive word set that keeps first-seen order.
    Order matters: suggestion ties are broken by lexicon position.
    """

    def __init__(self, words: Iterable[str] = DEFAULT_WORDS):
        ordered = {}
        for word in words:
            normalized = word.strip().upper()
            if normalized:
                ordered.setdefault(normalized, None)
        self._words: Tuple[str, ...] = tuple(ordered)
        self._index = frozenset(self._words)

    @classmethod
    def from_file(cls, path: str) -> "Lexicon":
        """Load a word list (one word per line, '#' starts a comment line)"""
        with open(path, encoding="utf-8") as f:
            words = [
                line.strip() for line in f
                if line.strip() and not line.lstrip().startswith("#")
            ]
        lexicon = cls(words)
        logger.info(f"✓ Loaded lexicon with {len(lexicon)} word(s) from {path}")
        return lexicon

    @property
    def words(self) -> Tuple[str, ...]:
        return self._words

    def contains(self, word: str) -> bool:
        return word.upper() in self._index

    def __contains__(self, word: str) -> bool:
        return self.contains(word)

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self):
        return iter(self._words)


def load_lexicon(path: Optional[str] = None) -> Lexicon:
    """Lexicon from the given or configured word list, built-in words otherwise"""
    path = path or settings.lexicon_path
    if path:
        return Lexicon.from_file(path)
    return Lexicon()
