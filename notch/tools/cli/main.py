"""
Entry point of `notch` CLI.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

import dotenv
from click.exceptions import BadParameter
from pydantic import ValidationError
from typer import Context, Exit, Option

from ...core import SqliteStore
from ..config import DEFAULT_CONFIG_FILE, Config
from . import library, notebook
from ._utils import MainTyper, logger, lookup_param

dotenv.load_dotenv()

app = MainTyper(
    "notch",
    help="Notch CLI Toolkit",
)


@app.callback()
def main(
    ctx: Context,
    database: Path
    | None = Option(
        None,
        help="SQLite database file, overriding config file",
        envvar="NOTCH_DATABASE",
        dir_okay=False,
    ),
    config_file: Path
    | None = Option(
        None,
        help=f".yaml file containing configuration, defaults to '{DEFAULT_CONFIG_FILE}' if it exists",
        envvar="NOTCH_CONFIG_FILE",
        dir_okay=False,
    ),
    verbose: bool = Option(
        False,
        "-v",
        "--verbose",
        help="Enable debug logging",
    ),
):
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    root_context = RootContext.from_config(
        ctx=ctx, config_file=config_file, database=database
    )

    ctx.obj = root_context


app.add_typer(library.app)
app.add_typer(notebook.app)


def run():
    app()


@dataclass(kw_only=True)
class RootContext:
    ctx: Context
    config: Config

    @classmethod
    def from_config(
        cls,
        *,
        ctx: Context,
        config_file: Path | None,
        database: Path | None,
    ) -> RootContext:
        # explicitly passed config file must exist
        if config_file is not None and not config_file.is_file():
            raise BadParameter(
                message=f"file does not exist: {config_file}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        config_file = config_file or DEFAULT_CONFIG_FILE

        try:
            config = (
                Config.load_yaml(config_file)
                if config_file.is_file()
                else Config()
            )
        except (ValueError, ValidationError) as e:
            raise BadParameter(
                f"failed to load config file '{config_file}': {e}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        if database is not None:
            try:
                config = Config.model_validate(
                    config.model_dump() | {"database": database}
                )
            except ValidationError as e:
                raise BadParameter(
                    f"invalid database '{database}': {e}",
                    ctx=ctx,
                    param=lookup_param(ctx, "database"),
                )

        return RootContext(ctx=ctx, config=config)

    def open_store(self) -> SqliteStore:
        try:
            return self.config.open_store(logger=logger)
        except sqlite3.Error as e:
            logger.error(
                f"Failed to open database '{self.config.database}': {e}"
            )
            raise Exit(code=1)


if __name__ == "__main__":
    app()
