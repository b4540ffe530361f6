"""Answer store: the resolution records produced by one resolution pass.

Records travel as text lines of the form ``<name>. <type> <answer>``. The
name is separated from the rest at the *first* ``". "`` only, so answers that
themselves contain dots (CNAME targets, IPv4 addresses) are kept intact.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Iterable, Iterator, List

from sievedns.core.errors import AdapterError, RecordParseError

RECORD_SEPARATOR = ". "


@dataclass(frozen=True)
class ResolutionRecord:
    """A single ``(name, answer)`` pair returned by a resolver.

    Attributes:
        name: Queried domain name, without the trailing dot.
        rtype: Record type string (``A``, ``AAAA``, ``CNAME``...).
        answer: Answer payload exactly as the resolver reported it.
    """

    name: str
    rtype: str
    answer: str

    def to_line(self) -> str:
        """Encode the record as ``<name>. <type> <answer>``."""
        return f"{self.name}{RECORD_SEPARATOR}{self.rtype} {self.answer}"


def parse_record(line: str) -> ResolutionRecord:
    """Parse one ``<name>. <type> <answer>`` line.

    Raises:
        RecordParseError: When the separator or the type/answer pair is missing.
    """
    name, sep, rest = line.strip().partition(RECORD_SEPARATOR)
    if not sep or not name:
        raise RecordParseError(line, "missing record separator")
    rtype, _, answer = rest.strip().partition(" ")
    answer = answer.strip()
    if not rtype or not answer:
        raise RecordParseError(line, "missing record type or answer")
    return ResolutionRecord(name=name.lower(), rtype=rtype.upper(), answer=answer)


class AnswerStore:
    """Immutable-by-convention collection of :class:`ResolutionRecord` objects.

    Every filtering operation returns a new store; a store is never merged
    with the output of another pass.

    Example::

        store = AnswerStore.from_lines(["a.example.com. A 1.2.3.4"])
        assert store.names() == ["a.example.com"]
    """

    def __init__(self, records: Iterable[ResolutionRecord] = ()) -> None:
        self._records: List[ResolutionRecord] = list(records)

    # ------------------------------------------------------------------
    # Construction / serialisation
    # ------------------------------------------------------------------

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "AnswerStore":
        """Build a store from record lines, skipping blank lines."""
        return cls(parse_record(line) for line in lines if line.strip())

    @classmethod
    def from_file(cls, path: Path) -> "AnswerStore":
        """Read a record file written by a resolver engine.

        Raises:
            AdapterError: When the file cannot be read.
            RecordParseError: When a line is malformed.
        """
        try:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise AdapterError(f"cannot read resolver output {path}: {exc}") from exc
        return cls.from_lines(text.splitlines())

    def to_lines(self) -> List[str]:
        """Return the records in their text encoding."""
        return [record.to_line() for record in self._records]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def names(self) -> List[str]:
        """Distinct record names, sorted."""
        return sorted({record.name for record in self._records})

    def has_name(self, name: str) -> bool:
        """``True`` if a record carries exactly *name* (descendants do not count)."""
        name = name.lower().rstrip(".")
        return any(record.name == name for record in self._records)

    def without_answers(self, answers: Collection[str]) -> "AnswerStore":
        """Return a new store without records whose answer is in *answers*."""
        if not answers:
            return AnswerStore(self._records)
        drop = set(answers)
        return AnswerStore(r for r in self._records if r.answer not in drop)

    def filter_types(self, rtypes: Collection[str]) -> "AnswerStore":
        """Return a new store keeping only records of the given types."""
        wanted = {rtype.upper() for rtype in rtypes}
        return AnswerStore(r for r in self._records if r.rtype in wanted)

    def __iter__(self) -> Iterator[ResolutionRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

    def __repr__(self) -> str:
        return f"<AnswerStore records={len(self._records)}>"
