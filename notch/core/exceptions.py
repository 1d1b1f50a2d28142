__all__ = [
    "DuplicateError",
    "NotFoundError",
    "ValidationError",
]


class ValidationError(Exception):
    """
    Raised when a requested change to the store is invalid.

    Examples:

    - {obj}`Notebook` created with a parent which does not exist
    - {obj}`Cell` given both a language and a diagram type
    """

    errors: list[str]

    def __init__(self, errors: list[str]):
        self.errors = errors
        errors_str = "\n".join([e for e in errors])
        super().__init__(f"Errors found during validation: {errors_str}")


class NotFoundError(ValidationError):
    """
    Raised when an entity referenced by id does not exist in the store.
    """

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__([f"{kind} '{entity_id}' does not exist"])


class DuplicateError(ValidationError):
    """
    Raised when a unique value (tag name, note source id) is already taken.
    """

    def __init__(self, kind: str, value: str):
        self.kind = kind
        self.value = value
        super().__init__([f"{kind} '{value}' already exists"])
