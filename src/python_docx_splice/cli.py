"""Command-line interface for python-docx-splice.

Provides commands for inspecting and updating charts and for inserting breaks
in Word documents from the terminal.
"""

from pathlib import Path
from typing import Annotated, NoReturn

import typer
import yaml

from . import Document, __version__
from .chart_data import load_chart_data, load_chart_options
from .errors import DocxSpliceError
from .splicer import InsertPosition

app = typer.Typer(
    name="docx-splice",
    help="Update charts and splice structure into Word documents.",
    no_args_is_help=True,
)

FileArgument = Annotated[Path, typer.Argument(help="Path to the .docx file")]
OutputOption = Annotated[
    Path | None, typer.Option("--output", "-o", help="Output file path (default: overwrite)")
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"docx-splice version {__version__}")
        raise typer.Exit()


def _fail(error: Exception) -> NoReturn:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1)


def _resolve_position(
    after: str | None, before: str | None, start: bool
) -> tuple[InsertPosition | None, str | None]:
    """Turn the placement flags into a position and anchor."""
    chosen = [flag for flag in (after, before, start or None) if flag]
    if len(chosen) > 1:
        typer.echo("Error: Use only one of --after, --before or --start", err=True)
        raise typer.Exit(1)
    if after:
        return InsertPosition.AFTER_TEXT, after
    if before:
        return InsertPosition.BEFORE_TEXT, before
    if start:
        return InsertPosition.START, None
    return None, None


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Update charts and splice structure into Word documents."""
    pass


@app.command()
def charts(file: FileArgument) -> None:
    """List the charts in a document."""
    try:
        with Document(file) as doc:
            infos = doc.list_charts()
    except DocxSpliceError as e:
        _fail(e)

    if not infos:
        typer.echo("No charts found")
        return
    for info in infos:
        typer.echo(str(info))


@app.command("show-chart")
def show_chart(
    file: FileArgument,
    index: Annotated[int, typer.Argument(help="1-based chart index")],
    workbook: Annotated[
        bool, typer.Option("--workbook", "-w", help="Show the embedded workbook's data instead")
    ] = False,
) -> None:
    """Print a chart's data as YAML."""
    try:
        with Document(file) as doc:
            data = doc.get_workbook_data(index) if workbook else doc.get_chart_data(index)
    except DocxSpliceError as e:
        _fail(e)

    typer.echo(yaml.safe_dump(data.to_dict(), sort_keys=False, allow_unicode=True), nl=False)


@app.command("update-chart")
def update_chart(
    file: FileArgument,
    index: Annotated[int, typer.Argument(help="1-based chart index")],
    data: Annotated[Path, typer.Option("--data", "-d", help="YAML or JSON chart data file")],
    strict: Annotated[
        bool, typer.Option("--strict", help="Fail instead of guessing the workbook")
    ] = False,
    output: OutputOption = None,
) -> None:
    """Replace a chart's data and its embedded workbook."""
    try:
        chart_data = load_chart_data(data)
        with Document(file) as doc:
            result = doc.update_chart(index, chart_data, strict=strict)
            output_path = output or file
            doc.save(output_path)
    except (DocxSpliceError, FileNotFoundError) as e:
        _fail(e)

    if result.workbook.is_heuristic:
        typer.echo(f"Warning: guessed workbook {result.workbook.part_name}", err=True)
    typer.echo(f"{result} and saved to {output_path}")


@app.command("insert-chart")
def insert_chart(
    file: FileArgument,
    data: Annotated[
        Path, typer.Option("--data", "-d", help="YAML or JSON chart data and options file")
    ],
    after: Annotated[
        str | None,
        typer.Option("--after", "-a", help="Insert after the paragraph with this text"),
    ] = None,
    before: Annotated[
        str | None,
        typer.Option("--before", "-b", help="Insert before the paragraph with this text"),
    ] = None,
    start: Annotated[bool, typer.Option("--start", help="Insert at the start of the body")] = False,
    output: OutputOption = None,
) -> None:
    """Create a new chart and insert it into the document."""
    position, anchor = _resolve_position(after, before, start)
    try:
        options = load_chart_options(data)
        if position is not None:
            options.position = position
            options.anchor = anchor
        with Document(file) as doc:
            index = doc.create_chart(options)
            output_path = output or file
            doc.save(output_path)
    except (DocxSpliceError, FileNotFoundError) as e:
        _fail(e)

    typer.echo(f"Created chart {index} and saved to {output_path}")


@app.command("copy-chart")
def copy_chart(
    file: FileArgument,
    index: Annotated[int, typer.Argument(help="1-based index of the chart to copy")],
    after: Annotated[
        str | None,
        typer.Option("--after", "-a", help="Insert after this text (default: after the source)"),
    ] = None,
    output: OutputOption = None,
) -> None:
    """Duplicate a chart together with its workbook."""
    try:
        with Document(file) as doc:
            new_index = doc.copy_chart(index, anchor=after)
            output_path = output or file
            doc.save(output_path)
    except DocxSpliceError as e:
        _fail(e)

    typer.echo(f"Copied chart {index} to chart {new_index} and saved to {output_path}")


@app.command("page-break")
def page_break(
    file: FileArgument,
    after: Annotated[
        str, typer.Option("--after", "-a", help="Insert after the paragraph with this text")
    ],
    section: Annotated[
        str | None,
        typer.Option(
            "--section",
            help="Insert a section break of this type (nextPage, continuous, evenPage, oddPage)",
        ),
    ] = None,
    output: OutputOption = None,
) -> None:
    """Insert a page break (or section break) after a paragraph."""
    try:
        with Document(file) as doc:
            if section:
                doc.insert_section_break(after, kind=section)
            else:
                doc.insert_page_break(after)
            output_path = output or file
            doc.save(output_path)
    except DocxSpliceError as e:
        _fail(e)

    kind = f"{section} section break" if section else "page break"
    typer.echo(f"Inserted {kind} and saved to {output_path}")


if __name__ == "__main__":
    app()
