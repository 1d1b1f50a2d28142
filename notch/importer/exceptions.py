from pathlib import Path

__all__ = [
    "CycleError",
    "LibraryError",
    "LibraryReadError",
    "MetadataError",
]


class LibraryError(Exception):
    """
    Base class of errors encountered while reading a foreign library.
    """


class LibraryReadError(LibraryError):
    """
    Raised when a file or folder of the library can't be read.
    """

    path: Path

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Failed to read '{path}': {reason}")


class MetadataError(LibraryError):
    """
    Raised when a metadata or content file is malformed.
    """

    path: Path

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Invalid file '{path}': {reason}")


class CycleError(LibraryError):
    """
    Raised when notebooks declare each other as descendants.
    """

    uuids: list[str]

    def __init__(self, uuids: list[str]):
        self.uuids = uuids
        super().__init__(f"Notebook hierarchy contains a cycle: {' -> '.join(uuids)}")
