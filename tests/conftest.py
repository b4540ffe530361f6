"""Shared pytest fixtures for the SIEVEDNS test suite."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set

import pytest

from sievedns.core.config import Config
from sievedns.core.rate_limiter import RateLimiter
from sievedns.core.store import AnswerStore, ResolutionRecord
from sievedns.core.wildcard import WildcardResult
from sievedns.resolvers.base import Resolver, WildcardDetector


class FakeResolver(Resolver):
    """In-memory resolver.

    Names listed in *answers* resolve to their values. Any other name beneath
    a zone listed in *wildcards* resolves to that zone's wildcard answers,
    the nearest zone winning.
    """

    name = "fake"

    def __init__(
        self,
        answers: Optional[Dict[str, List[str]]] = None,
        wildcards: Optional[Dict[str, List[str]]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.answers = answers or {}
        self.wildcards = wildcards or {}
        self.error = error
        self.calls: List[dict] = []

    def _lookup(self, name: str) -> List[str]:
        if name in self.answers:
            return self.answers[name]
        labels = name.split(".")
        for i in range(1, len(labels)):
            zone = ".".join(labels[i:])
            if zone in self.wildcards:
                return self.wildcards[zone]
        return []

    async def resolve(
        self,
        names: Sequence[str],
        nameservers: List[str],
        rate_limit: Optional[RateLimiter] = None,
    ) -> AnswerStore:
        self.calls.append(
            {"names": list(names), "nameservers": list(nameservers), "rate_limit": rate_limit}
        )
        if self.error is not None:
            raise self.error
        return AnswerStore(
            ResolutionRecord(name, "A", answer)
            for name in names
            for answer in self._lookup(name)
        )


class FakeWildcardDetector(WildcardDetector):
    """Detector returning a fixed :class:`WildcardResult`."""

    name = "fake"

    def __init__(self, roots: Optional[Set[str]] = None, answers: Optional[Set[str]] = None) -> None:
        self.result = WildcardResult(roots=set(roots or ()), answers=set(answers or ()))
        self.calls: List[tuple] = []

    async def detect(self, store: AnswerStore, candidates: Sequence[str]) -> WildcardResult:
        self.calls.append((store, list(candidates)))
        return self.result


def make_store(*pairs: tuple) -> AnswerStore:
    """Build an :class:`AnswerStore` from ``(name, answer)`` pairs."""
    return AnswerStore(ResolutionRecord(name, "A", answer) for name, answer in pairs)


@pytest.fixture
def sample_config() -> Config:
    """Return a default Config instance with no external dependencies."""
    return Config()


@pytest.fixture
def resolvers_file(tmp_path):
    """A small bulk resolver pool on disk."""
    path = tmp_path / "resolvers.txt"
    path.write_text("9.9.9.9\n208.67.222.222\n# comment\n\n9.9.9.9\n")
    return path


@pytest.fixture
def domains_file(tmp_path):
    """A domain list on disk."""
    path = tmp_path / "domains.txt"
    path.write_text("a.x.com\nb.x.com\nc.x.com\n")
    return path
