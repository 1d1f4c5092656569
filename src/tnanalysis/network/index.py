"""Index objects labelling the legs of tensors."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from typing import Tuple

_ids = itertools.count(1)


def _next_id() -> int:
    return next(_ids)


@dataclass(frozen=True)
class Index:
    """A tensor leg of a given size.

    Two indices are equal when they share identity, size, tags and prime
    level. ``sim`` makes a fresh identity, ``prime`` raises the level so that
    operator tensors can carry an output copy of an input index.

    Attributes:
        dim: Number of values the index can take.
        tags: Free-form labels ("Site", "Link", "real", ...).
        plev: Prime level.
        id: Identity shared by every copy of the index.
    """

    dim: int
    tags: Tuple[str, ...] = ()
    plev: int = 0
    id: int = field(default_factory=_next_id)

    def __post_init__(self):
        if self.dim < 1:
            raise ValueError(f"Index dimension must be positive, got {self.dim}.")

    def prime(self, n: int = 1) -> "Index":
        return replace(self, plev=self.plev + n)

    def noprime(self) -> "Index":
        return replace(self, plev=0)

    def sim(self) -> "Index":
        """Return an index of the same size and tags with a new identity."""
        return replace(self, id=_next_id())

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def __repr__(self) -> str:
        primes = "'" * self.plev
        tags = ",".join(self.tags)
        return f"Index(dim={self.dim}|id={self.id}|{tags}){primes}"


def site_index(dim: int, *tags: str) -> Index:
    return Index(dim, ("Site",) + tags)


def link_index(dim: int, *tags: str) -> Index:
    return Index(dim, ("Link",) + tags)
