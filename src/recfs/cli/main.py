"""Command-line entry point: ``recfs split`` / ``recfs join``."""

from __future__ import annotations

import os
from typing import Callable, Optional

import click

from recfs.config.config import FileServiceConfig
from recfs.core.constants import FORMATS
from recfs.service import FileService
from recfs.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _partition_fn(pattern: str, input_path: str) -> Callable[[int], str]:
    """Build a partition function from a ``str.format`` pattern.

    Available fields: ``index`` (zero-based part index), ``stem`` (input file
    name without extensions) and ``dir`` (input directory).
    """
    base = os.path.basename(input_path)
    stem = base.split(".", 1)[0]
    directory = os.path.dirname(input_path) or "."

    def partition(index: int) -> str:
        return pattern.format(index=index, stem=stem, dir=directory)

    try:
        first, second = partition(0), partition(1)
    except (KeyError, IndexError, ValueError) as exc:
        raise click.BadParameter(
            f"invalid pattern {pattern!r}: {exc!r}; use {{index}}, {{stem}} and {{dir}}",
            param_hint="--pattern",
        ) from exc
    if first == second:
        raise click.BadParameter("pattern must contain {index}", param_hint="--pattern")
    return partition


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO).")
@click.option("--buffer-size", type=int, default=None, help="I/O buffer size in bytes.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file with a 'recfs' section.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: Optional[str],
    buffer_size: Optional[int],
    config_path: Optional[str],
) -> None:
    """Split and join JSON, proto and CSV record files."""
    config = (
        FileServiceConfig.from_yaml(config_path) if config_path else FileServiceConfig.from_env()
    )
    if buffer_size is not None:
        config = config.model_copy(update={"buffer_size": buffer_size})

    configure_logging(level=log_level or config.log_level, json_output=False)
    try:
        service = FileService.from_config(config)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--buffer-size") from exc
    ctx.obj = service


@cli.command()
@click.argument("fmt", metavar="FORMAT", type=click.Choice(FORMATS))
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.option("--limit", type=click.IntRange(min=1), required=True, help="Records per part.")
@click.option(
    "--pattern",
    default=None,
    help="Part path pattern, e.g. 'out/part-{index}.json.gz' (default: '{dir}/{stem}-{index}' + input suffix).",
)
@click.pass_obj
def split(
    service: FileService, fmt: str, input_path: str, limit: int, pattern: Optional[str]
) -> None:
    """Split INPUT into parts of at most --limit records; prints part paths."""
    if pattern is None:
        suffix = os.path.basename(input_path).partition(".")[2]
        pattern = "{dir}/{stem}-{index}" + (f".{suffix}" if suffix else "")

    stats = service.split(fmt, input_path, limit, _partition_fn(pattern, input_path))
    for part in stats.parts:
        click.echo(part)
    logger.info("cli_split_done", parts=stats.part_count, records=stats.records)


@cli.command()
@click.argument("fmt", metavar="FORMAT", type=click.Choice(FORMATS))
@click.argument("output_path", metavar="OUTPUT", type=click.Path(dir_okay=False))
@click.argument("parts", metavar="PART...", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def join(service: FileService, fmt: str, output_path: str, parts: tuple[str, ...]) -> None:
    """Join PART files, in the given order, into OUTPUT."""
    stats = service.join(fmt, output_path, parts)
    click.echo(f"{stats.output}: {stats.records} records from {stats.parts} parts")


def main() -> None:
    cli(prog_name="recfs")


if __name__ == "__main__":
    main()
