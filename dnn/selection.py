"""
Deterministic voter selection.

Panels are drawn with a seeded Fisher-Yates shuffle whose indices come from
SHA-256, so the same article and the same eligible pool always produce the
same panel. Nothing here reads clocks or global random state, which keeps
selection replay-safe inside Temporal workflows.
"""

import hashlib
from typing import Iterable, List


def derive_seed(salt: str, article_id: str, pool: Iterable[str]) -> bytes:
    """Seed material for one article: salt, article id and the sorted pool.

    Including the pool ties the draw to the registry state at selection
    time, the way a block hash ties an on-chain draw to chain state.
    """
    hasher = hashlib.sha256()
    hasher.update(salt.encode("utf-8"))
    hasher.update(b"\x00")
    hasher.update(article_id.encode("utf-8"))
    for address in sorted(set(pool)):
        hasher.update(b"\x00")
        hasher.update(address.encode("utf-8"))
    return hasher.digest()


def _index(seed: bytes, position: int, bound: int) -> int:
    digest = hashlib.sha256(seed + position.to_bytes(8, "big")).digest()
    return int.from_bytes(digest, "big") % bound


def seeded_shuffle(candidates: Iterable[str], seed: bytes) -> List[str]:
    """Return the sorted, de-duplicated candidates shuffled by seed."""
    shuffled = sorted(set(candidates))
    for i in range(len(shuffled) - 1, 0, -1):
        j = _index(seed, i, i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def draw_panel(candidates: Iterable[str], size: int, seed: bytes) -> List[str]:
    """Draw size distinct addresses from candidates without replacement.

    Raises:
        ValueError: If fewer than size distinct candidates are available
    """
    shuffled = seeded_shuffle(candidates, seed)
    if size > len(shuffled):
        raise ValueError(
            f"Cannot draw {size} voters from {len(shuffled)} candidates"
        )
    return shuffled[:size]
