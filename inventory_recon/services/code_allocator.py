from __future__ import annotations

import logging
import random
import re
import string

logger = logging.getLogger(__name__)

FALLBACK_BASE = "BK"
_BASE36 = string.digits + string.ascii_uppercase
_LETTERS = re.compile(r"[A-Za-z]")


def random_suffix(length: int = 6, rng: random.Random | None = None) -> str:
    rng = rng or random
    return "".join(rng.choice(_BASE36) for _ in range(length))


def base_code(title: str | None) -> str:
    """First three letters of the title, uppercased; "BK" when fewer than two."""
    letters = _LETTERS.findall(title or "")[:3]
    if len(letters) < 2:
        return FALLBACK_BASE
    return "".join(letters).upper()


class CodeAllocator:
    """
    Hands out book codes that are free both in the store and in the plan
    being built. Probing the store is the only store access during planning.

    One allocator lives for one plan: codes are memoized per book so the
    copy-creation phase and the code-assignment phase agree.
    """

    def __init__(self, store, probe_limit: int = 999, rng: random.Random | None = None):
        self.store = store
        self.probe_limit = probe_limit
        self.rng = rng
        self._by_book: dict = {}
        self._reserved: set = set()

    def reserve(self, code: str) -> None:
        if code:
            self._reserved.add(code)

    def is_taken(self, code: str) -> bool:
        if code in self._reserved:
            return True
        return self.store.find_book_by_code(code) is not None

    def code_for(self, book) -> str:
        if book.id in self._by_book:
            return self._by_book[book.id]

        code = self.allocate(book.title)
        self._by_book[book.id] = code
        return code

    def allocate(self, title: str | None) -> str:
        base = base_code(title)
        candidate = base
        counter = 1
        while self.is_taken(candidate):
            if counter > self.probe_limit:
                candidate = FALLBACK_BASE + random_suffix(rng=self.rng)
                logger.warning(
                    f"[code_allocator] {base}001..{base}{self.probe_limit:03d} all taken, "
                    f"falling back to {candidate}"
                )
                break
            candidate = f"{base}{counter:03d}"
            counter += 1

        self.reserve(candidate)
        return candidate
