"""
Notebook operations on the local store.
"""
from __future__ import annotations

from pathlib import Path

from click import BadParameter
from rich.markup import escape
from rich.tree import Tree
from typer import Argument, Context, Option

from ...core import BaseStore, Notebook
from ...importer import LibraryReadError, import_markdown_file
from ._utils import MainTyper, console, get_root_context, logger, lookup_param

app = MainTyper(
    "notebook",
    help="Operations on notebooks in the local store",
)


@app.command()
def tree(ctx: Context):
    """
    Print notebook hierarchy with note counts
    """

    root_context = get_root_context(ctx)

    with root_context.open_store() as store:
        console.print(_build_tree(store, root_context.config.database))


@app.command("import-markdown")
def import_markdown(
    ctx: Context,
    files: list[Path] = Argument(
        help="Markdown files to import",
        exists=True,
        dir_okay=False,
    ),
    notebook_name: str
    | None = Option(
        None,
        "--notebook",
        help="Name of destination notebook, defaults to Inbox",
    ),
):
    """
    Import markdown files as notes
    """

    root_context = get_root_context(ctx)

    with root_context.open_store() as store:
        if notebook_name is None:
            dest = store.ensure_inbox()
        else:
            dest = next(
                (n for n in store.list_notebooks() if n.name == notebook_name),
                None,
            )

            if dest is None:
                raise BadParameter(
                    f"notebook '{notebook_name}' does not exist",
                    ctx=ctx,
                    param=lookup_param(ctx, "notebook_name"),
                )

        for file in files:
            try:
                import_markdown_file(
                    store, file, dest.notebook_id, logger=logger
                )
            except LibraryReadError as e:
                logger.error(str(e))


def _build_tree(store: BaseStore, database: Path) -> Tree:
    """
    Get rich tree of notebooks, children in position order.
    """

    notebooks = store.list_notebooks()
    children: dict[str | None, list[Notebook]] = {}

    for notebook in notebooks:
        children.setdefault(notebook.parent_id, []).append(notebook)

    root = Tree(escape(str(database)))

    def add(parent: Tree, parent_id: str | None):
        for notebook in children.get(parent_id, []):
            note_count = len(store.list_notes(notebook.notebook_id))
            branch = parent.add(
                f"{escape(notebook.name)} [dim]({note_count} notes)[/dim]"
            )
            add(branch, notebook.notebook_id)

    add(root, None)

    return root
