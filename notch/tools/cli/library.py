"""
Quiver library import functionality.
"""
from __future__ import annotations

from pathlib import Path

import typer
from typer import Argument, Context, Exit, Option

from ...importer import import_library, scan_for_duplicates
from ._utils import (
    MainTyper,
    ProgressDisplay,
    cancel_on_interrupt,
    console,
    format_issues,
    get_root_context,
    logger,
)

app = MainTyper(
    "library",
    help="Import notebooks from a Quiver library",
)


@app.command()
def scan(
    ctx: Context,
    path: Path = Argument(
        help="Library folder (.qvlibrary)",
        exists=True,
        file_okay=False,
    ),
):
    """
    List library notebooks whose names match existing notebooks
    """

    root_context = get_root_context(ctx)

    with root_context.open_store() as store:
        report = scan_for_duplicates(path, store, logger=logger)

    logger.info(f"Found {report.total_notebooks} notebooks in '{path}'")

    if report.has_duplicates:
        logger.warning(
            f"{len(report.colliding_names)} notebooks match existing notebooks:"
        )
        for name in report.colliding_names:
            console.print(f"- {name}", markup=False)
    else:
        logger.info("No duplicate notebooks")


@app.command("import")
def import_(
    ctx: Context,
    path: Path = Argument(
        help="Library folder (.qvlibrary)",
        exists=True,
        file_okay=False,
    ),
    skip_duplicates: bool
    | None = Option(
        None,
        "--skip-duplicates/--keep-duplicates",
        help="Whether to skip notebooks whose name matches an existing notebook; if neither is passed, use config file or ask",
        show_default=False,
    ),
    yes: bool = Option(
        False,
        "-y",
        "--yes",
        help="Don't ask for confirmation before importing; duplicates are skipped unless --keep-duplicates is passed",
    ),
):
    """
    Import notebooks and notes from library
    """

    root_context = get_root_context(ctx)

    if skip_duplicates is None:
        skip_duplicates = root_context.config.skip_duplicates

    with root_context.open_store() as store:
        report = scan_for_duplicates(path, store, logger=logger)

        if report.has_duplicates:
            names = ", ".join(f"'{n}'" for n in report.colliding_names)
            logger.warning(f"Notebooks already exist: {names}")

            if skip_duplicates is None:
                skip_duplicates = yes or typer.confirm(
                    f"Skip {len(report.colliding_names)} duplicate notebooks?",
                    default=True,
                )

        if not yes:
            if not typer.confirm(
                f"Import {report.total_notebooks} notebooks into '{root_context.config.database}'?"
            ):
                return

        with (
            cancel_on_interrupt() as cancel,
            ProgressDisplay.create_progress() as progress,
        ):
            result = import_library(
                store,
                path,
                skip_duplicates=bool(skip_duplicates),
                on_progress=ProgressDisplay(progress),
                cancel=cancel,
                logger=logger,
            )

    if result.errors:
        console.print(format_issues(result.errors))
        logger.error(f"Import finished with {len(result.errors)} errors")

    if result.cancelled:
        logger.warning(
            f"Import cancelled after {result.notebooks_imported} notebooks"
        )
        raise Exit(code=130)

    if result.errors:
        raise Exit(code=1)
