"""Wildcard filter.

Removes resolution records that only exist because a parent zone answers
every query beneath it, while keeping wildcard roots that resolve as names
in their own right.

The filter is answer-based: any record whose answer matches a known wildcard
answer is dropped, whichever name it belongs to. A legitimate subdomain that
happens to share an address with a wildcard is therefore removed too. This
favours precision over recall and is kept intentionally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Set

from sievedns.core.store import AnswerStore
from sievedns.utils.logger import get_logger

logger = get_logger(__name__)

WILDCARD_PREFIX = "*."


@dataclass
class WildcardResult:
    """Output of a wildcard detector.

    Attributes:
        roots: Wildcard roots, each written as ``*.<zone>``.
        answers: Answer values the wildcards resolve to.
    """

    roots: Set[str] = field(default_factory=set)
    answers: Set[str] = field(default_factory=set)

    @property
    def found(self) -> bool:
        return bool(self.roots)


@dataclass
class FilterOutcome:
    """Result of :func:`filter_wildcards`.

    Attributes:
        domains: Surviving domain names (rescued roots included).
        rescued: Wildcard roots kept because they resolve as exact names.
        removed: Number of records removed.
    """

    domains: Set[str]
    rescued: Set[str]
    removed: int = 0


def strip_wildcard(root: str) -> str:
    """Return *root* without its leading ``*.`` marker and trailing dot."""
    root = root.strip().rstrip(".").lower()
    if root.startswith(WILDCARD_PREFIX):
        root = root[len(WILDCARD_PREFIX):]
    return root


def rescued_roots(store: AnswerStore, roots: Set[str]) -> Set[str]:
    """Return the wildcard zones that appear as exact names in *store*."""
    return {zone for zone in map(strip_wildcard, roots) if store.has_name(zone)}


def filter_wildcards(store: AnswerStore, wildcards: WildcardResult) -> FilterOutcome:
    """Remove wildcard artifacts from *store*.

    Steps:

    1. Every root ``*.zone`` whose ``zone`` is itself a record name in
       *store* is rescued.
    2. Every record whose answer is a wildcard answer is removed.
    3. The result is the rescued roots plus the names left in the store.

    With no roots the store's names pass through untouched.

    Args:
        store: Answer store of the bulk resolution pass.
        wildcards: Roots and answers reported by the wildcard detector.

    Returns:
        :class:`FilterOutcome` describing the surviving domains.
    """
    if not wildcards.roots:
        return FilterOutcome(domains=set(store.names()), rescued=set())

    rescued = rescued_roots(store, wildcards.roots)
    remaining = store.without_answers(wildcards.answers)
    removed = len(store) - len(remaining)
    domains = rescued | set(remaining.names())

    logger.info(
        "Wildcard filter removed %d record(s); %d root(s) rescued, %d domain(s) left",
        removed,
        len(rescued),
        len(domains),
    )
    return FilterOutcome(domains=domains, rescued=rescued, removed=removed)
