"""Trusted resolver validation.

Re-resolves the surviving domains against a small pool of trusted resolvers
and keeps only the names that answer there too. Names that resolved only
through the bulk pool are treated as spoofed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from sievedns.core.config import DEFAULT_TRUSTED_RATE_PER_RESOLVER
from sievedns.core.errors import ConfigurationError
from sievedns.core.rate_limiter import RateLimiter
from sievedns.core.store import AnswerStore
from sievedns.resolvers.base import Resolver
from sievedns.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ValidationOutcome:
    """Result of :meth:`TrustedValidator.validate`.

    Attributes:
        domains: Names answered by the trusted pool.
        dropped: Input names the trusted pool did not answer.
        store: Records of the trusted pass; replaces the bulk store.
    """

    domains: Set[str] = field(default_factory=set)
    dropped: Set[str] = field(default_factory=set)
    store: AnswerStore = field(default_factory=AnswerStore)


class TrustedValidator:
    """Validate domains against a trusted resolver pool at a bounded rate.

    The default ceiling is ``rate_per_resolver`` queries per second for each
    trusted resolver; *rate_limit* replaces it with a fixed aggregate value.

    Example::

        validator = TrustedValidator(resolver, ["8.8.8.8", "1.1.1.1"])
        outcome = await validator.validate({"www.example.com"})
    """

    def __init__(
        self,
        resolver: Resolver,
        trusted_resolvers: List[str],
        rate_per_resolver: float = DEFAULT_TRUSTED_RATE_PER_RESOLVER,
        rate_limit: Optional[float] = None,
    ) -> None:
        if not trusted_resolvers:
            raise ConfigurationError("trusted resolver pool is empty")
        self.resolver = resolver
        self.trusted_resolvers = list(trusted_resolvers)
        if rate_limit and rate_limit > 0:
            self.limiter = RateLimiter(rate_limit)
        else:
            self.limiter = RateLimiter.per_resolver(len(self.trusted_resolvers), rate_per_resolver)

    @property
    def rps(self) -> float:
        """Aggregate query-rate ceiling of the validation pass."""
        return self.limiter.rps

    async def validate(self, domains: Iterable[str]) -> ValidationOutcome:
        """Re-resolve *domains* against the trusted pool.

        Args:
            domains: Names that survived the previous stage.

        Returns:
            :class:`ValidationOutcome`; ``domains`` is always a subset of the
            input.
        """
        wanted = set(domains)
        if not wanted:
            return ValidationOutcome()

        logger.info(
            "Validating [bold]%d[/] domain(s) against %d trusted resolver(s) at %g qps",
            len(wanted),
            len(self.trusted_resolvers),
            self.rps,
        )
        store = await self.resolver.resolve(sorted(wanted), self.trusted_resolvers, self.limiter)
        validated = set(store.names()) & wanted
        dropped = wanted - validated
        if dropped:
            logger.info("Trusted validation dropped %d domain(s)", len(dropped))
        return ValidationOutcome(domains=validated, dropped=dropped, store=store)
