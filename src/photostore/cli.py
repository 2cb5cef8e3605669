"""Command line interface for Photostore."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Iterator, TextIO

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from photostore.config import ConfigError, ConfigManager, PhotostoreConfig, resolve_with_precedence
from photostore.config.resolver import deep_merge, expand_dotted
from photostore.index import SymlinkIndexer
from photostore.ingestion import DateExtractor, HashComputer, IngestionPipeline, IngestionReport
from photostore.logging_setup import configure_logging
from photostore.store import PhotostoreError, Store, StoreContext, sidecar

console = Console()
err_console = Console(stderr=True)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"{command} summary for {root}: {parts}."


def _load_config(ctx: click.Context, base: str | None, quiet: bool) -> PhotostoreConfig:
    """Load configuration, apply ``--base`` and configure logging.

    Args:
        ctx: Click context used for parameter source inspection.
        base: Optional store base directory from the command line.
        quiet: Value of the ``--quiet`` flag.

    Returns:
        PhotostoreConfig: Effective configuration.
    """
    manager = ConfigManager()
    manager.ensure_exists()
    overrides = {"store.base_dir": base} if base else None
    config = manager.load(cli_overrides=overrides)

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    configure_logging(config.logging, quiet=quiet_enabled, console=err_console)
    return config


def _store_context(config: PhotostoreConfig) -> StoreContext:
    base_dir = config.store.resolved_base_dir()
    if base_dir.exists() and not base_dir.is_dir():
        raise click.ClickException(f"Store base {base_dir} is not a directory.")
    return StoreContext(base_dir=base_dir)


def _build_pipeline(config: PhotostoreConfig, tags: Iterable[str] = ()) -> IngestionPipeline:
    context = _store_context(config)
    all_tags: list[str] = []
    for tag in [*config.ingestion.default_tags, *tags]:
        if tag and tag not in all_tags:
            all_tags.append(tag)
    try:
        return IngestionPipeline(
            store=Store(context),
            hasher=HashComputer(),
            extractor=DateExtractor(config.ingestion.date_fields),
            indexer=SymlinkIndexer(context),
            tags=all_tags,
            progress_interval=config.ingestion.progress_interval,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def _read_paths(stream: TextIO) -> Iterator[str]:
    """Yield one path per input line with its line terminator removed."""
    for line in stream:
        yield line.rstrip("\r\n")


def _emit_report(report: IngestionReport, base_dir: Path, *, json_output: bool) -> None:
    counts = report.counts()
    if json_output:
        console.print_json(
            data={
                "context": {"base_dir": base_dir.as_posix(), "mode": report.mode},
                "counts": counts,
                "items": [item.model_dump(mode="json") for item in report.items],
            }
        )
        return
    label = "Ingest" if report.mode == "ingest" else "Resync"
    err_console.print(_format_summary_line(label, base_dir, counts), markup=False)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="photostore")
def cli() -> None:
    """Photostore keeps one canonical link per unique photo, indexed by date and tag."""


@cli.command()
@click.option(
    "-i",
    "--input",
    "input_file",
    type=click.File("r", encoding="utf-8"),
    default="-",
    show_default=True,
    help="Newline-delimited list of paths to ingest.",
)
@click.option("-t", "--tag", "tags", multiple=True, help="Tag to add to every ingested file.")
@click.option("--base", type=click.Path(path_type=str), help="Store base directory.")
@click.option("--json", "json_output", is_flag=True, help="Emit the batch report as JSON.")
@click.option("--quiet", is_flag=True, help="Only report warnings and errors.")
@click.pass_context
def ingest(
    ctx: click.Context,
    input_file: TextIO,
    tags: tuple[str, ...],
    base: str | None,
    json_output: bool,
    quiet: bool,
) -> None:
    """Ingest the paths listed on INPUT (one per line, stdin by default).

    With no paths at all, every object already in the store is resynced.
    Per-file failures are reported on stderr and never change the exit code.
    """
    try:
        config = _load_config(ctx, base, quiet)
        pipeline = _build_pipeline(config, tags)
        report = pipeline.run(_read_paths(input_file))
        _emit_report(report, pipeline.store.context.base_dir, json_output=json_output)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)


@cli.command()
@click.option("--base", type=click.Path(path_type=str), help="Store base directory.")
@click.option("--json", "json_output", is_flag=True, help="Emit the batch report as JSON.")
@click.option("--quiet", is_flag=True, help="Only report warnings and errors.")
@click.pass_context
def resync(ctx: click.Context, base: str | None, json_output: bool, quiet: bool) -> None:
    """Rewrite every sidecar and recreate every index link in the store."""
    try:
        config = _load_config(ctx, base, quiet)
        pipeline = _build_pipeline(config)
        report = pipeline.resync()
        _emit_report(report, pipeline.store.context.base_dir, json_output=json_output)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)


@cli.command("list")
@click.option("--base", type=click.Path(path_type=str), help="Store base directory.")
@click.pass_context
def list_objects(ctx: click.Context, base: str | None) -> None:
    """Print the content hash of every stored object."""
    try:
        config = _load_config(ctx, base, quiet=False)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    for content_hash in Store(_store_context(config)).list_all():
        click.echo(content_hash)


@cli.command()
@click.argument("content_hash", metavar="HASH")
@click.option("--base", type=click.Path(path_type=str), help="Store base directory.")
@click.option("--json", "json_output", is_flag=True, help="Emit the record as JSON.")
@click.pass_context
def show(ctx: click.Context, content_hash: str, base: str | None, json_output: bool) -> None:
    """Display the metadata record stored for HASH."""
    try:
        config = _load_config(ctx, base, quiet=False)
        store = Store(_store_context(config))
        if not store.exists(content_hash):
            raise click.ClickException(f"No stored object for {content_hash}.")
        record = store.load(content_hash)
    except (ValueError, ConfigError, PhotostoreError) as exc:
        raise click.ClickException(str(exc)) from exc

    if json_output:
        console.print_json(
            data={
                "hash": record.hash,
                "path": record.path.as_posix(),
                "meta_path": record.meta_path.as_posix(),
                "date": str(record.date) if record.date else None,
                "attributes": {key: value.as_list() for key, value in record.attributes.items()},
            }
        )
        return

    table = Table(title=f"Record {record.hash}")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for line in sidecar.dumps(record).splitlines():
        key, value = sidecar.parse_line(line)
        table.add_row(key, value)
    console.print(table)


@cli.group()
def config() -> None:
    """Manage Photostore configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        config_data = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(config_data.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = ConfigManager()
    manager.ensure_exists()

    if not all(segment.strip() for segment in key.split(".")):
        raise click.ClickException("KEY must be a dotted path such as 'store.base_dir'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = deep_merge(
            manager.load_file_overrides(),
            expand_dotted({key: parsed_value}, source_name="cli"),
        )
        resolve_with_precedence(defaults=PhotostoreConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    console.print(f"[green]Updated {key} = {parsed_value!r}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
