"""Exception hierarchy for SIEVEDNS.

Configuration problems are detected before the pipeline starts; adapter
failures abort a running pipeline. Empty results are never errors.
"""

from __future__ import annotations


class SieveDNSError(Exception):
    """Base class for all SIEVEDNS errors."""


class ConfigurationError(SieveDNSError):
    """A required input is missing or unreadable, or an engine is unavailable."""


class AdapterError(SieveDNSError):
    """A resolver or wildcard-detection engine failed or timed out."""


class OutputError(SieveDNSError):
    """A result artifact could not be written."""


class RecordParseError(AdapterError):
    """A resolution record line could not be parsed.

    Attributes:
        line: The offending raw line.
    """

    def __init__(self, line: str, reason: str = "malformed record") -> None:
        self.line = line
        super().__init__(f"{reason}: {line!r}")
