"""CLI entrypoint for category-attributes."""

import logging
import sys
from pathlib import Path

import rich_click as click

from category_attributes import __version__
from category_attributes.controllers import AttributesCliController, GenerateCommand

click.rich_click.USE_MARKDOWN = True
ATTRIBUTES_CONTROLLER = AttributesCliController()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.version_option(version=__version__, prog_name="category-attributes")
def category_attributes() -> None:
    """Category attribute generator CLI."""


@category_attributes.command("generate")
@click.option(
    "--input",
    "input_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False, allow_dash=True),
    default="-",
    show_default=True,
    help="JSON array of category groups; `-` reads stdin.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Write the result JSON here instead of stdout.",
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Concurrent OpenAI calls (default: CATEGORY_ATTRS_MAX_CONCURRENCY or 5).",
)
@click.option("--model", default=None, help="Override the OpenAI model name.")
@click.option("--trace-id", default=None, help="Trace id attached to log lines and errors.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity (logs go to stderr).",
)
def generate(  # noqa: PLR0913
    input_path: Path,
    output_path: Path | None,
    max_concurrency: int | None,
    model: str | None,
    trace_id: str | None,
    log_level: str,
) -> None:
    """Generate three attributes for every subcategory in the input."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    input_text = (
        sys.stdin.read() if str(input_path) == "-" else input_path.read_text(encoding="utf-8")
    )
    result = ATTRIBUTES_CONTROLLER.generate(
        GenerateCommand(
            input_text=input_text,
            max_concurrency=max_concurrency,
            model=model,
            trace_id=trace_id,
        ),
    )
    if not result.success:
        _emit_lines(result.lines, err=True)
        sys.exit(result.exit_code)
    if output_path is not None:
        output_path.write_text("\n".join(result.lines) + "\n", encoding="utf-8")
        click.echo(f"Results written to {output_path}")
        return
    _emit_lines(result.lines)


def _emit_lines(lines: list[str], *, err: bool = False) -> None:
    for line in lines:
        click.echo(line, err=err)


if __name__ == "__main__":  # pragma: no cover
    category_attributes()
