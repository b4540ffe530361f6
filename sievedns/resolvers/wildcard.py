"""Probe-based wildcard detector.

For every parent zone of the resolved names, a handful of random labels are
resolved beneath it. Random labels should never exist, so a zone whose probes
answer is a wildcard root, and the probe answers are its wildcard answers.
A zone that only answers through an ancestor wildcard is not a root itself.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set

from sievedns.core.rate_limiter import RateLimiter
from sievedns.core.store import AnswerStore
from sievedns.core.wildcard import WILDCARD_PREFIX, WildcardResult
from sievedns.resolvers.base import Resolver, WildcardDetector
from sievedns.utils.helpers import random_label
from sievedns.utils.logger import get_logger

logger = get_logger(__name__)


def parent_zones(name: str) -> List[str]:
    """Return the parent zones of *name*, nearest first, excluding the bare TLD.

    Example::

        >>> parent_zones("a.b.example.com")
        ['b.example.com', 'example.com']
    """
    labels = name.rstrip(".").split(".")
    return [".".join(labels[i:]) for i in range(1, len(labels) - 1)]


class ProbeWildcardDetector(WildcardDetector):
    """:class:`~sievedns.resolvers.base.WildcardDetector` using random-label probes.

    Args:
        resolver: Engine used to resolve the probes.
        nameservers: Resolver pool for the probes.
        tests: Random probes per zone.
        rate_limit: Optional query-rate ceiling for the probes.
    """

    name = "probe"

    def __init__(
        self,
        resolver: Resolver,
        nameservers: List[str],
        tests: int = 3,
        rate_limit: Optional[RateLimiter] = None,
    ) -> None:
        self.resolver = resolver
        self.nameservers = nameservers
        self.tests = max(1, tests)
        self.rate_limit = rate_limit

    def _zones(self, store: AnswerStore, candidates: Sequence[str]) -> List[str]:
        resolved = set(store.names())
        if candidates:
            resolved &= {c.lower().rstrip(".") for c in candidates}
        zones: Set[str] = set()
        for name in resolved:
            zones.update(parent_zones(name))
        return sorted(zones)

    async def detect(self, store: AnswerStore, candidates: Sequence[str]) -> WildcardResult:
        """Probe the parent zones of the resolved names for wildcards.

        Zones are judged shallowest first. A zone whose probe answers are all
        served by an ancestor wildcard is part of that wildcard, not a root of
        its own, so it is not reported.
        """
        zones = self._zones(store, candidates)
        if not zones:
            return WildcardResult()

        probes: Dict[str, str] = {}
        for zone in zones:
            for _ in range(self.tests):
                probes[f"{random_label()}.{zone}"] = zone
        logger.debug("Probing %d zone(s) with %d random name(s)", len(zones), len(probes))

        answered = await self.resolver.resolve(list(probes), self.nameservers, self.rate_limit)

        zone_answers: Dict[str, Set[str]] = {}
        for record in answered:
            zone = probes.get(record.name)
            if zone is not None:
                zone_answers.setdefault(zone, set()).add(record.answer)

        result = WildcardResult()
        root_answers: Dict[str, Set[str]] = {}
        for zone in sorted(zone_answers, key=lambda z: (z.count("."), z)):
            answers = zone_answers[zone]
            inherited: Set[str] = set()
            for parent in parent_zones(zone):
                inherited |= root_answers.get(parent, set())
            if answers <= inherited:
                logger.debug("%s answers through a parent wildcard", zone)
                continue
            root_answers[zone] = answers
            result.roots.add(f"{WILDCARD_PREFIX}{zone}")
            result.answers |= answers

        if result.found:
            logger.info(
                "Found [bold]%d[/] wildcard root(s) with %d answer(s)",
                len(result.roots),
                len(result.answers),
            )
        else:
            logger.info("No wildcard roots found")
        return result
