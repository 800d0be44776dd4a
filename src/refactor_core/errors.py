"""Custom exceptions for refactor-core."""


class RefactorCoreError(Exception):
    """Base exception for all refactor-core errors."""

    pass


class NotFoundError(RefactorCoreError):
    """Raised when a region or symbol is absent from the given snapshot."""

    pass


class RegionNotFoundError(NotFoundError):
    """Raised when a selection does not cover any extractable statement."""

    def __init__(self, message: str = "Selected code does not contain extractable statements") -> None:
        super().__init__(message)


class MemberNotFoundError(NotFoundError):
    """Raised when a class or member cannot be located."""

    def __init__(self, name: str, container: str = "") -> None:
        where = f" in '{container}'" if container else ""
        super().__init__(f"'{name}' not found{where}")
        self.name = name
        self.container = container


class SelectionError(RefactorCoreError):
    """Raised when a selection range string is malformed."""

    def __init__(self, selection: str) -> None:
        super().__init__(
            f"Invalid selection range '{selection}'. "
            "Expected 'startLine:startColumn-endLine:endColumn'"
        )
        self.selection = selection


class OperationCancelled(RefactorCoreError):
    """Raised when a cancel signal is observed during a long computation."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)


class ConfigError(RefactorCoreError):
    """Raised when a settings file cannot be loaded."""

    pass
