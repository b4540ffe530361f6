"""Domain list builder.

Produces the candidate name list from either a domain file or a wordlist
combined with a base domain, and loads resolver pools.
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from sievedns.core.errors import ConfigurationError
from sievedns.utils.helpers import deduplicate, is_valid_ip
from sievedns.utils.logger import get_logger

logger = get_logger(__name__)

# Lowercase alphanumerics, hyphens and dots only
_CANDIDATE_RE = re.compile(r"^[a-z0-9.-]+$")

STDIN = "-"


def _read_lines(path: str, what: str) -> List[str]:
    """Return the stripped, non-empty lines of *path* (``-`` reads stdin).

    Raises:
        ConfigurationError: When the file is missing or unreadable.
    """
    if path == STDIN:
        text = sys.stdin.read()
    else:
        file_path = Path(path)
        if not file_path.is_file():
            raise ConfigurationError(f"{what} file not found: {path}")
        try:
            text = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ConfigurationError(f"cannot read {what} file {path}: {exc}") from exc
    return [line.strip() for line in text.splitlines() if line.strip()]


def is_valid_candidate(name: str) -> bool:
    """Return ``True`` if *name* only uses lowercase alphanumerics, hyphens and dots."""
    return bool(_CANDIDATE_RE.match(name))


def sanitize(names: Iterable[str]) -> List[str]:
    """Lowercase *names* and silently drop the ones with invalid characters.

    Order is preserved and the operation is idempotent.
    """
    lowered = (name.lower() for name in names)
    return [name for name in lowered if is_valid_candidate(name)]


def build_candidates(words: Iterable[str], domain: str) -> List[str]:
    """Combine each wordlist entry with *domain* as ``<entry>.<domain>``."""
    base = domain.strip().rstrip(".")
    return [f"{word}.{base}" for word in words]


def load_domains(path: str) -> List[str]:
    """Load one domain name per line from *path*."""
    return [line.rstrip(".") for line in _read_lines(path, "domain")]


def load_wordlist(path: str) -> List[str]:
    """Load wordlist entries from *path*, skipping ``#`` comment lines."""
    return [line for line in _read_lines(path, "wordlist") if not line.startswith("#")]


def load_resolvers(path: str) -> List[str]:
    """Load a resolver pool (one address per line) from *path*.

    Comment lines are skipped, duplicates removed. Entries that are not IP
    addresses are kept but logged, since engines such as massdns accept
    ``ip:port`` forms.

    Raises:
        ConfigurationError: When the file is unreadable or holds no resolvers.
    """
    entries = deduplicate(
        line.split("#", 1)[0].strip()
        for line in _read_lines(path, "resolvers")
        if not line.startswith("#")
    )
    entries = [e for e in entries if e]
    if not entries:
        raise ConfigurationError(f"resolvers file is empty: {path}")
    odd = [e for e in entries if not is_valid_ip(e)]
    if odd:
        logger.debug("%d resolver entries in %s are not bare IP addresses", len(odd), path)
    return entries


def build_domain_list(
    domains_file: Optional[str] = None,
    wordlist_file: Optional[str] = None,
    domain: Optional[str] = None,
    sanitize_names: bool = True,
) -> List[str]:
    """Build the deduplicated candidate list for a pipeline run.

    Exactly one of *domains_file* or the (*wordlist_file*, *domain*) pair must
    be given.

    Args:
        domains_file: Path of a domain list, one name per line.
        wordlist_file: Path of a wordlist to combine with *domain*.
        domain: Base domain for wordlist mode.
        sanitize_names: Apply :func:`sanitize` (default on).

    Returns:
        Ordered unique candidate names.

    Raises:
        ConfigurationError: On missing or conflicting inputs.
    """
    if domains_file and wordlist_file:
        raise ConfigurationError("give either a domain list or a wordlist, not both")
    if domains_file:
        names = load_domains(domains_file)
    elif wordlist_file:
        if not domain:
            raise ConfigurationError("wordlist mode requires a base domain")
        names = build_candidates(load_wordlist(wordlist_file), domain)
    else:
        raise ConfigurationError("no domain list or wordlist given")

    if sanitize_names:
        names = sanitize(names)
    names = deduplicate(names)
    logger.info("Loaded [bold]%d[/] candidate domains", len(names))
    return names
