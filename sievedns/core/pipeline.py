"""Resolution pipeline for SIEVEDNS.

The :class:`Pipeline` runs the stages strictly in order::

    BUILD -> BULK_RESOLVE -> [WILDCARD_DETECT -> WILDCARD_FILTER]?
          -> [TRUSTED_VALIDATE]? -> WRITE -> DONE

Each stage waits for the full output of the previous one. Wildcard filtering
and trusted validation are skipped when no detector / validator is supplied.
Output is only written once every earlier stage has succeeded.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Dict, List, Optional, Sequence, TypeVar

from sievedns.core.config import Config
from sievedns.core.errors import AdapterError, ConfigurationError, SieveDNSError
from sievedns.core.inputs import load_resolvers
from sievedns.core.output import OutputWriter
from sievedns.core.rate_limiter import RateLimiter, make_limiter
from sievedns.core.store import AnswerStore
from sievedns.core.validator import TrustedValidator
from sievedns.core.wildcard import WildcardResult, filter_wildcards
from sievedns.resolvers import get_resolver
from sievedns.resolvers.base import Resolver, WildcardDetector
from sievedns.utils.helpers import deduplicate
from sievedns.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Stage(str, Enum):
    """Pipeline stages, in execution order."""

    BUILD = "build"
    BULK_RESOLVE = "bulk_resolve"
    WILDCARD_DETECT = "wildcard_detect"
    WILDCARD_FILTER = "wildcard_filter"
    TRUSTED_VALIDATE = "trusted_validate"
    WRITE = "write"
    DONE = "done"


@dataclass
class PipelineResult:
    """Everything a pipeline run produced.

    Attributes:
        domains: Final domain set, sorted.
        bulk_store: Records of the bulk resolution pass.
        wildcards: Wildcard roots and answers (empty when skipped).
        rescued: Wildcard zones kept because they resolve themselves.
        validation_store: Records of the trusted pass, if it ran.
        dropped: Names the trusted pass did not confirm, sorted.
        stages: Stages entered, in order.
        counts: Domain count after each stage.
        started_at: Unix timestamp when the run began.
        finished_at: Unix timestamp when the run ended.
    """

    domains: List[str] = field(default_factory=list)
    bulk_store: AnswerStore = field(default_factory=AnswerStore)
    wildcards: WildcardResult = field(default_factory=WildcardResult)
    rescued: List[str] = field(default_factory=list)
    validation_store: Optional[AnswerStore] = None
    dropped: List[str] = field(default_factory=list)
    stages: List[Stage] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def duration(self) -> float:
        """Elapsed run time in seconds."""
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at


class Pipeline:
    """Bulk resolve, filter wildcards, validate, and write.

    Example::

        pipeline = Pipeline(resolver, resolvers, wildcard_detector=detector)
        result = await pipeline.run(["www.example.com", "dev.example.com"])
        print(result.domains)
    """

    def __init__(
        self,
        resolver: Resolver,
        nameservers: List[str],
        wildcard_detector: Optional[WildcardDetector] = None,
        validator: Optional[TrustedValidator] = None,
        writer: Optional[OutputWriter] = None,
        rate_limit: Optional[RateLimiter] = None,
        stage_timeout: Optional[float] = None,
    ) -> None:
        """Initialise the pipeline.

        Args:
            resolver: Bulk resolution engine.
            nameservers: Bulk resolver pool.
            wildcard_detector: Detector for wildcard filtering; ``None`` skips it.
            validator: Trusted validator; ``None`` skips validation.
            writer: Output writer; ``None`` writes nothing.
            rate_limit: Optional query-rate ceiling for the bulk pass.
            stage_timeout: Seconds each engine call may take before the run
                           is aborted.
        """
        self.resolver = resolver
        self.nameservers = nameservers
        self.wildcard_detector = wildcard_detector
        self.validator = validator
        self.writer = writer
        self.rate_limit = rate_limit
        self.stage_timeout = stage_timeout

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: Config, writer: Optional[OutputWriter] = None) -> "Pipeline":
        """Build a pipeline from *config*.

        Raises:
            ConfigurationError: When a resolver file is missing or an engine
                                cannot be set up.
        """
        if not config.resolve.resolvers_file:
            raise ConfigurationError("a resolvers file is required")
        nameservers = load_resolvers(config.resolve.resolvers_file)
        resolver = get_resolver(config)
        bulk_limit = make_limiter(config.resolve.rate_limit)

        detector: Optional[WildcardDetector] = None
        if config.wildcard.enabled:
            from sievedns.resolvers.wildcard import ProbeWildcardDetector

            detector = ProbeWildcardDetector(
                resolver,
                nameservers,
                tests=config.wildcard.tests,
                rate_limit=bulk_limit,
            )

        validator: Optional[TrustedValidator] = None
        if config.validation.enabled:
            trusted = (
                load_resolvers(config.validation.trusted_resolvers_file)
                if config.validation.trusted_resolvers_file
                else list(config.validation.trusted_resolvers)
            )
            validator = TrustedValidator(
                resolver,
                trusted,
                rate_per_resolver=config.validation.rate_per_resolver,
                rate_limit=config.validation.rate_limit,
            )

        if writer is None:
            out = config.output
            writer = OutputWriter(
                domains=out.domains,
                records=out.records,
                wildcard_roots=out.wildcard_roots,
                wildcard_answers=out.wildcard_answers,
            )

        return cls(
            resolver,
            nameservers,
            wildcard_detector=detector,
            validator=validator,
            writer=writer,
            rate_limit=bulk_limit,
            stage_timeout=config.resolve.stage_timeout,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _enter(self, result: PipelineResult, stage: Stage) -> None:
        result.stages.append(stage)
        logger.debug("Entering stage %s", stage.value)

    def _finish(self, result: PipelineResult, stage: Stage, count: int) -> None:
        result.counts[stage.value] = count

    async def _call(self, stage: Stage, awaitable: Awaitable[T]) -> T:
        """Await an engine call, turning engine failures into :class:`AdapterError`."""
        try:
            if self.stage_timeout:
                return await asyncio.wait_for(awaitable, timeout=self.stage_timeout)
            return await awaitable
        except asyncio.TimeoutError as exc:
            raise AdapterError(
                f"{stage.value} timed out after {self.stage_timeout:g}s"
            ) from exc
        except SieveDNSError:
            raise
        except Exception as exc:
            raise AdapterError(f"{stage.value} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, candidates: Sequence[str]) -> PipelineResult:
        """Execute every enabled stage over *candidates*.

        Args:
            candidates: Candidate names from the domain list builder.

        Returns:
            :class:`PipelineResult` with the final sorted domain list.

        Raises:
            AdapterError: When an engine fails; nothing is written.
            OutputError: When an artifact cannot be written.
        """
        result = PipelineResult()

        self._enter(result, Stage.BUILD)
        names = deduplicate(candidates)
        self._finish(result, Stage.BUILD, len(names))

        self._enter(result, Stage.BULK_RESOLVE)
        logger.info(
            "Resolving [bold]%d[/] domain(s) with %d resolver(s) (%s)",
            len(names),
            len(self.nameservers),
            self.resolver.name,
        )
        store = await self._call(
            Stage.BULK_RESOLVE,
            self.resolver.resolve(names, self.nameservers, self.rate_limit),
        )
        result.bulk_store = store
        domains = set(store.names())
        self._finish(result, Stage.BULK_RESOLVE, len(domains))
        logger.info("Found [bold]%d[/] resolving domain(s)", len(domains))

        if self.wildcard_detector is not None:
            self._enter(result, Stage.WILDCARD_DETECT)
            wildcards = await self._call(
                Stage.WILDCARD_DETECT,
                self.wildcard_detector.detect(store, names),
            )
            result.wildcards = wildcards
            self._finish(result, Stage.WILDCARD_DETECT, len(wildcards.roots))

            self._enter(result, Stage.WILDCARD_FILTER)
            filtered = filter_wildcards(store, wildcards)
            domains = filtered.domains
            result.rescued = sorted(filtered.rescued)
            self._finish(result, Stage.WILDCARD_FILTER, len(domains))

        if self.validator is not None:
            self._enter(result, Stage.TRUSTED_VALIDATE)
            outcome = await self._call(Stage.TRUSTED_VALIDATE, self.validator.validate(domains))
            result.validation_store = outcome.store
            result.dropped = sorted(outcome.dropped)
            domains = outcome.domains
            self._finish(result, Stage.TRUSTED_VALIDATE, len(domains))

        result.domains = sorted(domains)

        self._enter(result, Stage.WRITE)
        if self.writer is not None:
            self.writer.write(result)
        self._finish(result, Stage.WRITE, len(result.domains))

        result.stages.append(Stage.DONE)
        result.finished_at = time.time()
        logger.info(
            "Done: [bold]%d[/] domain(s) in %.1fs", len(result.domains), result.duration
        )
        return result
