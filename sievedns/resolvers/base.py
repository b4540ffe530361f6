"""Engine capabilities consumed by the pipeline.

The pipeline only talks to these two interfaces, so tests can substitute
in-memory fakes for the real engines.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from sievedns.core.rate_limiter import RateLimiter
from sievedns.core.store import AnswerStore
from sievedns.core.wildcard import WildcardResult


class Resolver(ABC):
    """Bulk address-record resolver.

    Implementations query every name in *names* against the *nameservers*
    pool and return one record per ``(name, answer)`` pair. Names that time
    out or do not exist produce no record. Engine failures raise
    :class:`~sievedns.core.errors.AdapterError`.
    """

    name: str = "base"

    @abstractmethod
    async def resolve(
        self,
        names: Sequence[str],
        nameservers: List[str],
        rate_limit: Optional[RateLimiter] = None,
    ) -> AnswerStore:
        """Resolve *names* and return a fresh :class:`AnswerStore`."""

    def __repr__(self) -> str:
        return f"<Resolver {self.name}>"


class WildcardDetector(ABC):
    """Finds wildcard zones among resolved names."""

    name: str = "base"

    @abstractmethod
    async def detect(self, store: AnswerStore, candidates: Sequence[str]) -> WildcardResult:
        """Return the wildcard roots and answers behind *store*.

        Args:
            store: Records of the bulk resolution pass.
            candidates: The candidate names that were resolved.
        """

    def __repr__(self) -> str:
        return f"<WildcardDetector {self.name}>"
