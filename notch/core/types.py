from enum import Enum

__all__ = [
    "CellType",
    "DiagramType",
]


class CellType(str, Enum):
    """
    Kind of content held by a cell.
    """

    TEXT = "text"
    """Plain text"""

    CODE = "code"
    """Source code, optionally tagged with a language"""

    MARKDOWN = "markdown"
    """Markdown markup"""

    LATEX = "latex"
    """LaTeX math markup"""

    DIAGRAM = "diagram"
    """Diagram source, optionally tagged with a diagram type"""

    def __str__(self) -> str:
        return self.value


class DiagramType(str, Enum):
    """
    Subtype of a diagram cell.
    """

    SEQUENCE = "sequence"
    FLOW = "flow"

    def __str__(self) -> str:
        return self.value


DEFAULT_LANGUAGE = "javascript"
"""
Language assigned to newly created code cells.
"""

DEFAULT_DIAGRAM_TYPE = DiagramType.FLOW
"""
Diagram type assigned to newly created diagram cells.
"""
