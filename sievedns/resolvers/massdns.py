"""massdns subprocess engine.

Runs the ``massdns`` binary via ``asyncio.create_subprocess_exec``, feeding
names on stdin and reading simple-text records from an output file inside a
scoped temporary directory.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from sievedns.core.errors import AdapterError, ConfigurationError
from sievedns.core.rate_limiter import RateLimiter
from sievedns.core.store import AnswerStore
from sievedns.resolvers.base import Resolver
from sievedns.utils.logger import get_logger

logger = get_logger(__name__)

# Record types kept from massdns output; authority/SOA noise is discarded
ADDRESS_TYPES = ("A", "AAAA", "CNAME")


class MassDNSResolver(Resolver):
    """:class:`~sievedns.resolvers.base.Resolver` backed by the massdns binary.

    Example::

        engine = MassDNSResolver(binary="/usr/local/bin/massdns")
        store = await engine.resolve(names, resolvers)
    """

    name = "massdns"

    def __init__(
        self,
        binary: str = "massdns",
        hashmap_size: int = 10000,
        record_type: str = "A",
    ) -> None:
        """Initialise the engine.

        Args:
            binary: massdns executable name or path.
            hashmap_size: Number of concurrent lookups (``-s``).
            record_type: Record type to query (``-t``).
        """
        self.binary = binary
        self.hashmap_size = hashmap_size
        self.record_type = record_type.upper()

    def _executable(self) -> str:
        path = shutil.which(self.binary)
        if path is None:
            raise ConfigurationError(f"massdns binary not found: {self.binary}")
        return path

    def _build_command(self, executable: str, resolvers_file: Path, output_file: Path) -> List[str]:
        """Build the massdns command list.

        Returns:
            Command list suitable for ``asyncio.create_subprocess_exec``.
        """
        return [
            executable,
            "-r", str(resolvers_file),
            "-t", self.record_type,
            "-o", "S",
            "-s", str(self.hashmap_size),
            "-w", str(output_file),
            "-q",
        ]

    async def resolve(
        self,
        names: Sequence[str],
        nameservers: List[str],
        rate_limit: Optional[RateLimiter] = None,
    ) -> AnswerStore:
        """Resolve *names* with massdns.

        Raises:
            ConfigurationError: When the binary is missing or the pool is empty.
            AdapterError: When massdns exits abnormally.
        """
        if not nameservers:
            raise ConfigurationError("resolver pool is empty")
        executable = self._executable()
        if not names:
            return AnswerStore()

        with tempfile.TemporaryDirectory(prefix="sievedns-massdns-") as tmp:
            workdir = Path(tmp)
            resolvers_file = workdir / "resolvers.txt"
            output_file = workdir / "records.txt"
            resolvers_file.write_text("\n".join(nameservers) + "\n", encoding="utf-8")

            cmd = self._build_command(executable, resolvers_file, output_file)
            logger.debug("Running %s", " ".join(cmd))
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await asyncio.gather(
                    self._feed(proc, names, rate_limit),
                    proc.stderr.read(),  # type: ignore[union-attr]
                )
                returncode = await proc.wait()
            finally:
                if proc.returncode is None:
                    proc.kill()
                    await proc.wait()

            if returncode != 0:
                detail = stderr.decode(errors="replace").strip().splitlines()
                raise AdapterError(
                    f"massdns exited with code {returncode}"
                    + (f": {detail[-1]}" if detail else "")
                )
            if not output_file.exists():
                return AnswerStore()
            store = AnswerStore.from_file(output_file).filter_types(ADDRESS_TYPES)

        logger.debug("massdns returned %d record(s) for %d name(s)", len(store), len(names))
        return store

    @staticmethod
    async def _feed(
        proc: asyncio.subprocess.Process,
        names: Sequence[str],
        rate_limit: Optional[RateLimiter],
    ) -> None:
        """Write *names* to the process stdin, paced by *rate_limit*."""
        stdin = proc.stdin
        assert stdin is not None
        try:
            for name in names:
                if rate_limit is not None:
                    await rate_limit.acquire()
                stdin.write(f"{name}\n".encode())
                await stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # massdns died early; its exit code is reported by the caller
            logger.debug("massdns closed its input early")
        finally:
            stdin.close()
