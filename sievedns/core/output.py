"""Output writer for pipeline artifacts.

File artifacts are staged next to their destination and only moved into place
once every one of them has been written, so a failed run leaves no partial
set of files behind.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, TextIO, Tuple

from sievedns.core.errors import OutputError
from sievedns.utils.logger import get_logger

if TYPE_CHECKING:
    from sievedns.core.pipeline import PipelineResult

logger = get_logger(__name__)

STDOUT = "-"


def _render(lines: List[str]) -> str:
    return "".join(f"{line}\n" for line in lines)


def _stage_file(text: str, destination: str) -> Tuple[Path, Path]:
    """Write *text* to a temporary sibling of *destination*.

    Returns:
        ``(staged, final)`` paths.
    """
    final = Path(destination)
    final.parent.mkdir(parents=True, exist_ok=True)
    staged = final.with_name(f".{final.name}.partial")
    staged.write_text(text, encoding="utf-8")
    return staged, final


class OutputWriter:
    """Write the final domains and intermediate artifacts of a run.

    Each destination is optional; ``None`` discards that artifact.

    Args:
        domains: Destination for the final domain list (``-`` for stdout).
        records: Destination for the raw bulk resolution records.
        wildcard_roots: Destination for the wildcard root list.
        wildcard_answers: Destination for the wildcard answer list.
        stdout: Stream used for ``-`` destinations.
    """

    def __init__(
        self,
        domains: Optional[str] = None,
        records: Optional[str] = None,
        wildcard_roots: Optional[str] = None,
        wildcard_answers: Optional[str] = None,
        stdout: Optional[TextIO] = None,
    ) -> None:
        self.domains = domains
        self.records = records
        self.wildcard_roots = wildcard_roots
        self.wildcard_answers = wildcard_answers
        self._stdout = stdout

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    def write(self, result: "PipelineResult") -> List[Path]:
        """Write every configured artifact of *result*.

        Files are written first and stdout last, so nothing reaches stdout
        when a file destination fails.

        Returns:
            Paths of the files written (stdout is not listed).

        Raises:
            OutputError: When a destination cannot be written. No artifact
                         file is left in place.
        """
        artifacts = [
            (self.domains, result.domains),
            (self.records, result.bulk_store.to_lines()),
            (self.wildcard_roots, sorted(result.wildcards.roots)),
            (self.wildcard_answers, sorted(result.wildcards.answers)),
        ]
        to_stdout: List[str] = []
        staged: List[Tuple[Path, Path]] = []
        try:
            for destination, lines in artifacts:
                if not destination:
                    continue
                if destination == STDOUT:
                    to_stdout.append(_render(lines))
                    continue
                staged.append(_stage_file(_render(lines), destination))
                logger.debug("Staged %d line(s) for %s", len(lines), destination)
            for tmp, final in staged:
                os.replace(tmp, final)
        except OSError as exc:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            raise OutputError(f"cannot write {exc.filename or 'output'}: {exc.strerror or exc}") from exc

        for text in to_stdout:
            self.stdout.write(text)
        self.stdout.flush()
        return [final for _, final in staged]
