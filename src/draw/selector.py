from __future__ import annotations

import hashlib
from typing import Iterator, List, Sequence

WORD_BITS = 256
WORD_SPACE = 1 << WORD_BITS


def _words(output: bytes) -> Iterator[int]:
    """SHA-256 in counter mode; the VRF output is the only entropy."""
    counter = 0
    while True:
        block = hashlib.sha256(output + counter.to_bytes(8, "big")).digest()
        yield int.from_bytes(block, "big")
        counter += 1


def _below(words: Iterator[int], bound: int) -> int:
    # rejection sampling keeps every index equally likely
    limit = WORD_SPACE - (WORD_SPACE % bound)
    for word in words:
        if word < limit:
            return word % bound
    raise RuntimeError("random stream exhausted (unexpected).")


def select_winners(output: bytes, participants: Sequence[str], num_winners: int) -> List[str]:
    """
    Picks min(num_winners, len(participants)) distinct participants.

    Partial Fisher-Yates over the given ordering, driven by `output`. The same
    output and the same ordering always give the same winners, in the same order.
    """
    if num_winners < 1:
        raise ValueError("num_winners must be at least 1")
    if not output:
        raise ValueError("random output must not be empty")
    if len(set(participants)) != len(participants):
        raise ValueError("participants must be distinct")

    pool = list(participants)
    k = min(num_winners, len(pool))
    words = _words(output)
    for i in range(k):
        j = i + _below(words, len(pool) - i)
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:k]
