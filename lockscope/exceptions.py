"""Custom exceptions for lockscope."""


class LockscopeError(Exception):
    """Base exception for all lockscope errors."""


class LockfileError(LockscopeError):
    """The input document cannot be turned into a package inventory."""


class InvalidLockfileError(LockfileError):
    """The input text is not parseable JSON."""

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__("not valid json")


class EmptyLockfileError(LockfileError):
    """The document parsed but yielded zero packages."""

    def __init__(self) -> None:
        super().__init__("no packages found")


class StateTransitionError(LockscopeError):
    """Raised on an attempt to move a record's enrichment state backwards."""

    def __init__(self, name: str, current: str, target: str):
        self.name = name
        self.current = current
        self.target = target
        super().__init__(f"package '{name}': cannot move from {current} to {target}")


class UpstreamError(LockscopeError):
    """An upstream API answered with a non-success status (-> same HTTP status)."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message)


class InvalidRequestError(LockscopeError):
    """A relay request body is missing required fields (-> HTTP 400)."""
