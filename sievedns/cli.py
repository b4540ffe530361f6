"""SIEVEDNS CLI — terminal interface built with Typer + Rich."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sievedns import __version__
from sievedns.core.config import Config, load_config
from sievedns.core.errors import AdapterError, ConfigurationError, OutputError
from sievedns.core.inputs import STDIN, build_domain_list
from sievedns.core.output import STDOUT
from sievedns.core.pipeline import Pipeline, PipelineResult
from sievedns.resolvers import ENGINES
from sievedns.utils.logger import configure_logging, get_logger

app = typer.Typer(
    name="sievedns",
    help="[bold cyan]SIEVEDNS[/] — bulk subdomain resolution with wildcard and spoof filtering",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

err_console = Console(stderr=True)
logger = get_logger(__name__)

EXIT_ADAPTER_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_OUTPUT_ERROR = 3

_BANNER = r"""
     _                    _
 ___(_) _____   _____  __| |_ __  ___
/ __| |/ _ \ \ / / _ \/ _` | '_ \/ __|
\__ \ |  __/\ V /  __/ (_| | | | \__ \
|___/_|\___| \_/ \___|\__,_|_| |_|___/
"""


def _print_banner() -> None:
    """Print the SIEVEDNS banner to stderr."""
    err_console.print(
        Panel(
            Text(_BANNER, style="bold cyan", justify="center"),
            subtitle=f"[dim]v{__version__}[/]",
            border_style="cyan",
            expand=False,
        )
    )


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

_RESOLVERS = typer.Option(None, "--resolvers", "-r", help="Resolver pool file for the bulk pass")
_TRUSTED = typer.Option(None, "--resolvers-trusted", help="Trusted resolver pool file")
_ENGINE = typer.Option(None, "--engine", "-e", help=f"Resolver engine: {'/'.join(ENGINES)}")
_BIN = typer.Option(None, "--bin", help="Path to the massdns binary")
_RATE = typer.Option(None, "--rate-limit", "-l", help="Bulk query rate ceiling (qps, 0 = unlimited)")
_RATE_TRUSTED = typer.Option(
    None, "--rate-limit-trusted", help="Validation rate ceiling (default: 10 qps per trusted resolver)"
)
_TESTS = typer.Option(None, "--wildcard-tests", help="Random probes per zone for wildcard detection")
_SKIP_SANITIZE = typer.Option(False, "--skip-sanitize", help="Keep candidates as given")
_SKIP_WILDCARD = typer.Option(False, "--skip-wildcard-filter", help="Do not filter wildcard results")
_SKIP_VALIDATION = typer.Option(False, "--skip-validation", help="Do not validate with trusted resolvers")
_WRITE = typer.Option(None, "--write", "-w", help="Write final domains to this file (default: stdout)")
_WRITE_RECORDS = typer.Option(None, "--write-massdns", help="Write raw bulk resolution records")
_WRITE_WILDCARDS = typer.Option(None, "--write-wildcards", help="Write wildcard roots")
_WRITE_ANSWERS = typer.Option(None, "--write-wildcard-answers", help="Write wildcard answers")
_QUIET = typer.Option(False, "--quiet", "-q", help="Only print results")
_VERBOSE = typer.Option(False, "--verbose", "-v", help="Verbose output")
_LOG_FILE = typer.Option(None, "--log-file", help="Also write log messages to this file")
_CONFIG = typer.Option(None, "--config", help="Custom config file")


def _patch_config(
    cfg: Config,
    resolvers: Optional[str],
    resolvers_trusted: Optional[str],
    engine: Optional[str],
    binary: Optional[str],
    rate_limit: Optional[float],
    rate_limit_trusted: Optional[float],
    wildcard_tests: Optional[int],
    skip_sanitize: bool,
    skip_wildcard_filter: bool,
    skip_validation: bool,
    write: Optional[str],
    write_massdns: Optional[str],
    write_wildcards: Optional[str],
    write_wildcard_answers: Optional[str],
) -> Config:
    """Apply command-line overrides on top of the loaded configuration."""
    if resolvers:
        cfg.resolve.resolvers_file = resolvers
    if resolvers_trusted:
        cfg.validation.trusted_resolvers_file = resolvers_trusted
    if engine:
        cfg.resolve.engine = engine
    if binary:
        cfg.massdns.binary = binary
    if rate_limit is not None:
        cfg.resolve.rate_limit = rate_limit
    if rate_limit_trusted is not None:
        cfg.validation.rate_limit = rate_limit_trusted
    if wildcard_tests is not None:
        cfg.wildcard.tests = wildcard_tests
    if skip_sanitize:
        cfg.resolve.sanitize = False
    if skip_wildcard_filter:
        cfg.wildcard.enabled = False
    if skip_validation:
        cfg.validation.enabled = False
    cfg.output.domains = write or cfg.output.domains or STDOUT
    if write_massdns:
        cfg.output.records = write_massdns
    if write_wildcards:
        cfg.output.wildcard_roots = write_wildcards
    if write_wildcard_answers:
        cfg.output.wildcard_answers = write_wildcard_answers
    return cfg


def _load_config(config_file: Optional[str]) -> Config:
    """Load the configuration, exiting with a configuration error on failure."""
    try:
        return load_config(config_file)
    except ConfigurationError as exc:
        err_console.print(f"[red]Configuration error:[/] {exc}")
        raise typer.Exit(EXIT_CONFIG_ERROR)


def _execute(
    cfg: Config,
    quiet: bool,
    domains_file: Optional[str] = None,
    wordlist_file: Optional[str] = None,
    domain: Optional[str] = None,
) -> None:
    """Build the candidate list and run the pipeline, mapping errors to exit codes."""
    try:
        candidates = build_domain_list(
            domains_file=domains_file,
            wordlist_file=wordlist_file,
            domain=domain,
            sanitize_names=cfg.resolve.sanitize,
        )
        pipeline = Pipeline.from_config(cfg)
        result = asyncio.run(pipeline.run(candidates))
    except ConfigurationError as exc:
        err_console.print(f"[red]Configuration error:[/] {exc}")
        raise typer.Exit(EXIT_CONFIG_ERROR)
    except AdapterError as exc:
        err_console.print(f"[red]Resolution failed:[/] {exc}")
        raise typer.Exit(EXIT_ADAPTER_ERROR)
    except OutputError as exc:
        err_console.print(f"[red]Cannot write output:[/] {exc}")
        raise typer.Exit(EXIT_OUTPUT_ERROR)

    if not quiet:
        _display_summary(result)


def _display_summary(result: PipelineResult) -> None:
    """Render a Rich summary table of the run on stderr."""
    table = Table(
        title="Pipeline Summary",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("Stage", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="bold")
    for stage, count in result.counts.items():
        table.add_row(stage, str(count))
    err_console.print(table)
    err_console.print(
        f"[bold]Duration:[/] {result.duration:.1f}s  "
        f"[bold]Wildcard roots:[/] {len(result.wildcards.roots)}  "
        f"[bold]Rescued:[/] {len(result.rescued)}  "
        f"[bold]Dropped by validation:[/] {len(result.dropped)}  "
        f"[bold]Domains:[/] {len(result.domains)}"
    )


# ---------------------------------------------------------------------------
# resolve command
# ---------------------------------------------------------------------------


@app.command()
def resolve(
    domains_file: str = typer.Argument(..., help=f"Domain list file ('{STDIN}' for stdin)"),
    resolvers: Optional[str] = _RESOLVERS,
    resolvers_trusted: Optional[str] = _TRUSTED,
    engine: Optional[str] = _ENGINE,
    binary: Optional[str] = _BIN,
    rate_limit: Optional[float] = _RATE,
    rate_limit_trusted: Optional[float] = _RATE_TRUSTED,
    wildcard_tests: Optional[int] = _TESTS,
    skip_sanitize: bool = _SKIP_SANITIZE,
    skip_wildcard_filter: bool = _SKIP_WILDCARD,
    skip_validation: bool = _SKIP_VALIDATION,
    write: Optional[str] = _WRITE,
    write_massdns: Optional[str] = _WRITE_RECORDS,
    write_wildcards: Optional[str] = _WRITE_WILDCARDS,
    write_wildcard_answers: Optional[str] = _WRITE_ANSWERS,
    quiet: bool = _QUIET,
    verbose: bool = _VERBOSE,
    log_file: Optional[str] = _LOG_FILE,
    config_file: Optional[str] = _CONFIG,
) -> None:
    """[bold]Resolve a list of domains and filter the results.[/]

    Examples:

        sievedns resolve domains.txt -r resolvers.txt

        cat domains.txt | sievedns resolve - -r resolvers.txt -w valid.txt
    """
    if not quiet:
        _print_banner()
    configure_logging(log_file=log_file, verbose=verbose, quiet=quiet)

    cfg = _patch_config(
        _load_config(config_file),
        resolvers, resolvers_trusted, engine, binary, rate_limit, rate_limit_trusted,
        wildcard_tests, skip_sanitize, skip_wildcard_filter, skip_validation,
        write, write_massdns, write_wildcards, write_wildcard_answers,
    )
    _execute(cfg, quiet, domains_file=domains_file)


# ---------------------------------------------------------------------------
# bruteforce command
# ---------------------------------------------------------------------------


@app.command()
def bruteforce(
    wordlist: str = typer.Argument(..., help="Wordlist file"),
    domain: str = typer.Argument(..., help="Base domain, e.g. example.com"),
    resolvers: Optional[str] = _RESOLVERS,
    resolvers_trusted: Optional[str] = _TRUSTED,
    engine: Optional[str] = _ENGINE,
    binary: Optional[str] = _BIN,
    rate_limit: Optional[float] = _RATE,
    rate_limit_trusted: Optional[float] = _RATE_TRUSTED,
    wildcard_tests: Optional[int] = _TESTS,
    skip_sanitize: bool = _SKIP_SANITIZE,
    skip_wildcard_filter: bool = _SKIP_WILDCARD,
    skip_validation: bool = _SKIP_VALIDATION,
    write: Optional[str] = _WRITE,
    write_massdns: Optional[str] = _WRITE_RECORDS,
    write_wildcards: Optional[str] = _WRITE_WILDCARDS,
    write_wildcard_answers: Optional[str] = _WRITE_ANSWERS,
    quiet: bool = _QUIET,
    verbose: bool = _VERBOSE,
    log_file: Optional[str] = _LOG_FILE,
    config_file: Optional[str] = _CONFIG,
) -> None:
    """[bold]Brute-force subdomains of DOMAIN from a wordlist.[/]

    Examples:

        sievedns bruteforce wordlist.txt example.com -r resolvers.txt

        sievedns bruteforce wordlist.txt example.com -r resolvers.txt --skip-validation
    """
    if not quiet:
        _print_banner()
    configure_logging(log_file=log_file, verbose=verbose, quiet=quiet)

    cfg = _patch_config(
        _load_config(config_file),
        resolvers, resolvers_trusted, engine, binary, rate_limit, rate_limit_trusted,
        wildcard_tests, skip_sanitize, skip_wildcard_filter, skip_validation,
        write, write_massdns, write_wildcards, write_wildcard_answers,
    )
    _execute(cfg, quiet, wordlist_file=wordlist, domain=domain)


# ---------------------------------------------------------------------------
# config command
# ---------------------------------------------------------------------------


@app.command()
def config(
    config_file: Optional[str] = typer.Option(None, "--config", help="Config file path"),
) -> None:
    """[bold]Show the effective configuration.[/]"""
    cfg = _load_config(config_file)
    Console().print_json(cfg.model_dump_json(indent=2))


# ---------------------------------------------------------------------------
# version command
# ---------------------------------------------------------------------------


@app.command()
def version() -> None:
    """[bold]Show SIEVEDNS version information.[/]"""
    Console().print(f"[bold cyan]SIEVEDNS[/] version [bold]{__version__}[/]")


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point registered in pyproject.toml."""
    app(args=argv)


if __name__ == "__main__":
    main()
