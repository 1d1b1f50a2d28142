import logging
import signal
from pathlib import Path
from threading import Event

from conftest import LibraryBuilder
from pytest import MonkeyPatch, fixture
from typer.testing import CliRunner, Result

from notch import *
from notch.tools.cli import library as library_cli
from notch.tools.cli.main import app


class LogHandler(logging.Handler):
    """
    Handler to create a list of logs for testcases to access for verification.
    """

    test_logs: list[str]

    def __init__(self):
        super().__init__()
        self.test_logs = []

    def emit(self, record: logging.LogRecord):
        self.test_logs.append(record.getMessage())


# create and register handler
log_handler = LogHandler()
logging.getLogger("notch").addHandler(log_handler)

runner = CliRunner()


@fixture
def workdir(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
    """
    Run CLI from an empty folder without config from the environment.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NOTCH_DATABASE", raising=False)
    monkeypatch.delenv("NOTCH_CONFIG_FILE", raising=False)
    log_handler.test_logs.clear()
    return tmp_path


def invoke(database: Path, *args: str, input: str | None = None) -> Result:
    return runner.invoke(
        app, ["--database", str(database), *args], input=input
    )


def notebook_names(database: Path) -> list[str]:
    with SqliteStore(database) as store:
        return sorted(n.name for n in store.list_notebooks())


def test_scan(workdir: Path, library: LibraryBuilder):
    database = workdir / "notes.db"

    with SqliteStore(database) as store:
        store.create_notebook("Work")

    library.notebook("work")
    library.notebook("Home")

    result = invoke(database, "library", "scan", str(library.root))

    assert result.exit_code == 0
    assert "1 notebooks match existing notebooks:" in log_handler.test_logs
    assert notebook_names(database) == ["Work"]


def test_import(workdir: Path, library: LibraryBuilder):
    database = workdir / "notes.db"

    with SqliteStore(database) as store:
        store.create_notebook("Work")

    work = library.notebook("Work", children=["nb-Projects"])
    library.note(work, "Skipped")
    projects = library.notebook("Projects")
    library.note(projects, "Roadmap")

    result = invoke(
        database,
        "library",
        "import",
        "--skip-duplicates",
        "-y",
        str(library.root),
    )

    assert result.exit_code == 0
    assert notebook_names(database) == ["Projects", "Work"]

    with SqliteStore(database) as store:
        assert store.get_note_by_source_id("note-Roadmap") is not None
        assert store.get_note_by_source_id("note-Skipped") is None


def test_import_confirm(workdir: Path, library: LibraryBuilder):
    """
    Declining the confirmation doesn't import anything.
    """
    database = workdir / "notes.db"
    library.notebook("Work")

    result = invoke(
        database, "library", "import", str(library.root), input="n\n"
    )

    assert result.exit_code == 0
    assert notebook_names(database) == []

    result = invoke(
        database, "library", "import", str(library.root), input="y\n"
    )

    assert result.exit_code == 0
    assert notebook_names(database) == ["Work"]


def test_import_errors(workdir: Path, library: LibraryBuilder):
    """
    Import with errors exits with nonzero status.
    """
    database = workdir / "notes.db"

    notebook = library.notebook("Work")
    (notebook / "meta.json").write_text("{")

    result = invoke(database, "library", "import", "-y", str(library.root))

    assert result.exit_code == 1
    assert "Import finished with 1 errors" in log_handler.test_logs


def test_import_interrupt(
    workdir: Path, library: LibraryBuilder, monkeypatch: MonkeyPatch
):
    """
    Ctrl-C during import stops at the next notebook and exits with 130.
    """
    database = workdir / "notes.db"

    notebook = library.notebook("Work")
    library.note(notebook, "Note")

    cancel_events: list[Event] = []

    def interrupted_import(*args, cancel: Event, **kwargs) -> ImportResult:
        cancel_events.append(cancel)
        signal.raise_signal(signal.SIGINT)
        return import_library(*args, cancel=cancel, **kwargs)

    monkeypatch.setattr(library_cli, "import_library", interrupted_import)
    handler = signal.getsignal(signal.SIGINT)

    result = invoke(database, "library", "import", "-y", str(library.root))

    assert result.exit_code == 130
    assert len(cancel_events) == 1
    assert cancel_events[0].is_set()
    assert (
        "Interrupted, stopping after current notebook" in log_handler.test_logs
    )
    assert "Import cancelled after 0 notebooks" in log_handler.test_logs
    assert notebook_names(database) == []

    # previous handler is restored
    assert signal.getsignal(signal.SIGINT) is handler


def test_config_file(workdir: Path, library: LibraryBuilder):
    """
    Database and duplicate handling are taken from config file.
    """
    (workdir / "notch.yaml").write_text(
        "database: config.db\nskip_duplicates: true\n"
    )

    with SqliteStore(workdir / "config.db") as store:
        store.create_notebook("Work")

    library.notebook("Work")
    library.notebook("Home")

    # only the import itself is confirmed
    result = runner.invoke(
        app, ["library", "import", str(library.root)], input="y\n"
    )

    assert result.exit_code == 0
    assert notebook_names(workdir / "config.db") == ["Home", "Work"]


def test_bad_config_file(workdir: Path):
    result = runner.invoke(
        app, ["--config-file", "missing.yaml", "notebook", "tree"]
    )
    assert result.exit_code == 2

    (workdir / "notch.yaml").write_text("- not a mapping\n")

    result = runner.invoke(app, ["notebook", "tree"])
    assert result.exit_code == 2


def test_tree(workdir: Path):
    database = workdir / "notes.db"

    with SqliteStore(database) as store:
        work = store.create_notebook("Work")
        projects = store.create_notebook("Projects", work.notebook_id)
        store.create_note(projects.notebook_id, "Roadmap")

    result = invoke(database, "notebook", "tree")

    assert result.exit_code == 0
    assert "Work" in result.output
    assert "Projects" in result.output


def test_import_markdown(workdir: Path):
    database = workdir / "notes.db"

    readme = workdir / "readme.md"
    readme.write_text("# Readme\n\nHello\n")

    result = invoke(database, "notebook", "import-markdown", str(readme))
    assert result.exit_code == 0

    with SqliteStore(database) as store:
        inbox = store.ensure_inbox()
        notes = store.list_notes(inbox.notebook_id)

    assert [n.title for n in notes] == ["Readme"]

    result = invoke(
        database,
        "notebook",
        "import-markdown",
        "--notebook",
        "Missing",
        str(readme),
    )
    assert result.exit_code == 2
