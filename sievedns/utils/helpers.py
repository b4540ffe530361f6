"""Utility functions for SIEVEDNS.

Helpers for deduplication, resolver address validation, and random probe
labels.
"""

from __future__ import annotations

import ipaddress
import random
import string
from typing import Iterable, List, TypeVar

T = TypeVar("T")


def deduplicate(items: Iterable[T]) -> List[T]:
    """Return a list with duplicates removed while preserving insertion order.

    Args:
        items: Any iterable of hashable items.

    Returns:
        Ordered unique list.
    """
    seen: set = set()
    result: List[T] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def is_valid_ip(address: str) -> bool:
    """Return ``True`` if *address* is a valid IPv4 or IPv6 address.

    Args:
        address: String to validate.

    Returns:
        Boolean validation result.
    """
    try:
        ipaddress.ip_address(address)
        return True
    except ValueError:
        return False


def random_label(length: int = 12) -> str:
    """Return a random lowercase DNS label unlikely to exist in any zone."""
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def chunk_list(items: List[T], size: int) -> List[List[T]]:
    """Split *items* into consecutive sub-lists of at most *size* elements.

    Args:
        items: The list to chunk.
        size: Maximum chunk size.

    Returns:
        List of sub-lists.
    """
    return [items[i: i + size] for i in range(0, len(items), size)]
