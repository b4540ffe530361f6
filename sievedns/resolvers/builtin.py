"""In-process bulk resolver built on aiodns.

Spreads queries randomly across the resolver pool, bounded by a semaphore
and an optional :class:`~sievedns.core.rate_limiter.RateLimiter`.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Dict, List, Optional, Sequence

import aiodns

from sievedns.core.errors import ConfigurationError
from sievedns.core.rate_limiter import RateLimiter
from sievedns.core.store import AnswerStore, ResolutionRecord
from sievedns.resolvers.base import Resolver
from sievedns.utils.helpers import chunk_list
from sievedns.utils.logger import get_logger

logger = get_logger(__name__)


class AsyncDNSResolver(Resolver):
    """aiodns-backed :class:`~sievedns.resolvers.base.Resolver`.

    Example::

        resolver = AsyncDNSResolver(concurrency=200)
        store = await resolver.resolve(["www.example.com"], ["8.8.8.8", "1.1.1.1"])
    """

    name = "builtin"

    def __init__(
        self,
        timeout: int = 5,
        tries: int = 2,
        concurrency: int = 500,
        record_type: str = "A",
    ) -> None:
        """Initialise the resolver.

        Args:
            timeout: Per-query timeout in seconds.
            tries: Attempts per query, handled inside c-ares.
            concurrency: Max simultaneous DNS queries.
            record_type: Address record type to query.
        """
        self._timeout = timeout
        self._tries = tries
        self._concurrency = concurrency
        self._record_type = record_type.upper()
        self._channels: Dict[str, Any] = {}

    def _channel(self, nameserver: str) -> Any:
        """Return (creating on first use) the aiodns channel bound to *nameserver*."""
        channel = self._channels.get(nameserver)
        if channel is None:
            channel = aiodns.DNSResolver(
                nameservers=[nameserver],
                timeout=self._timeout,
                tries=self._tries,
            )
            self._channels[nameserver] = channel
        return channel

    async def _query(self, domain: str, nameserver: str) -> List[str]:
        """Query *domain* against *nameserver*, returning answer strings."""
        try:
            result = await self._channel(nameserver).query(domain, self._record_type)
        except aiodns.error.DNSError as exc:
            logger.debug("%s %s via %s failed: %s", self._record_type, domain, nameserver, exc)
            return []
        items = result if isinstance(result, list) else [result]
        return [item.host for item in items if getattr(item, "host", None)]

    async def resolve(
        self,
        names: Sequence[str],
        nameservers: List[str],
        rate_limit: Optional[RateLimiter] = None,
    ) -> AnswerStore:
        """Resolve *names* against *nameservers*.

        Args:
            names: Domain names to query.
            nameservers: Resolver pool; each query picks one at random.
            rate_limit: Optional aggregate query-rate ceiling.

        Returns:
            A new :class:`AnswerStore` holding every answer received.

        Raises:
            ConfigurationError: When *nameservers* is empty.
        """
        if not nameservers:
            raise ConfigurationError("resolver pool is empty")

        sem = asyncio.Semaphore(self._concurrency)

        async def _one(domain: str) -> List[ResolutionRecord]:
            async with sem:
                if rate_limit is not None:
                    await rate_limit.acquire()
                answers = await self._query(domain, random.choice(nameservers))
                return [ResolutionRecord(domain, self._record_type, a) for a in answers]

        records: List[ResolutionRecord] = []
        start = time.monotonic()
        batch_size = max(100, self._concurrency)
        done = 0
        for batch in chunk_list(list(names), batch_size):
            for found in await asyncio.gather(*[_one(d) for d in batch]):
                records.extend(found)
            done += len(batch)
            logger.debug("Resolved %d/%d names", done, len(names))

        logger.debug(
            "Builtin resolver: %d record(s) for %d name(s) in %.1fs",
            len(records),
            len(names),
            time.monotonic() - start,
        )
        return AnswerStore(records)
