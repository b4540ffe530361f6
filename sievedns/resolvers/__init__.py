"""Resolver and wildcard-detection engines."""

from __future__ import annotations

from sievedns.core.config import Config
from sievedns.core.errors import ConfigurationError
from sievedns.resolvers.base import Resolver, WildcardDetector

ENGINES = ("massdns", "builtin")


def get_resolver(config: Config) -> Resolver:
    """Return the resolver engine selected by ``config.resolve.engine``.

    Raises:
        ConfigurationError: For an unknown engine name.
    """
    engine = config.resolve.engine.lower()
    if engine == "massdns":
        from sievedns.resolvers.massdns import MassDNSResolver

        return MassDNSResolver(
            binary=config.massdns.binary,
            hashmap_size=config.massdns.hashmap_size,
        )
    if engine == "builtin":
        from sievedns.resolvers.builtin import AsyncDNSResolver

        return AsyncDNSResolver(
            timeout=config.resolve.timeout,
            concurrency=config.resolve.concurrency,
        )
    raise ConfigurationError(
        f"unknown resolver engine {config.resolve.engine!r} (choose from {', '.join(ENGINES)})"
    )


__all__ = ["ENGINES", "Resolver", "WildcardDetector", "get_resolver"]
