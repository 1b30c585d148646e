"""Usage oracles: decide whether an imported binding is referenced in its file.

The classifier only talks to :class:`UsageOracle`, so the textual heuristic
below can later be swapped for real symbol-table resolution.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Pattern


class UsageOracle(ABC):
    """Answers reference questions about a bound name within one file."""

    @abstractmethod
    def count(self, name: str, text: str) -> int:
        """Number of occurrences of *name* in *text*."""
        ...

    def is_referenced(self, name: str, source: str, statement: str) -> bool:
        """True if *name* is used somewhere besides its own import *statement*.

        The statement itself accounts for one occurrence; anything beyond
        that counts as a use. Occurrences inside the statement's module
        specifier (``import { foo } from './foo'``) are not mistaken for uses.
        """
        occurrences = self.count(name, source) - self.count(name, statement) + 1
        return occurrences > 1


@lru_cache(maxsize=4096)
def _word_pattern(name: str) -> Pattern[str]:
    # JS identifiers may contain "$", which \b does not treat as a word char.
    return re.compile(r"(?<![\w$])" + re.escape(name) + r"(?![\w$])")


class WordBoundaryOracle(UsageOracle):
    """Whole-word textual counting.

    Cannot tell a real reference from the same identifier inside a comment or
    string literal, so it errs toward reporting names as used.
    """

    def count(self, name: str, text: str) -> int:
        if not name:
            return 0
        return len(_word_pattern(name).findall(text))
