from __future__ import annotations

from typing import List, Optional


class StagingError(RuntimeError):
    """Base error for the staging engine.

    `kind` is the stable classification exposed at the front-end boundary.
    """

    kind = "Staging"


class NotStagedError(StagingError):
    """Lookup of an item (or tag key) that has nothing staged."""

    kind = "NotStaged"

    def __init__(self, service: str, name: str, detail: Optional[str] = None) -> None:
        self.service = service
        self.name = name
        msg = f"{service} {name!r} is not staged"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class InvalidServiceError(StagingError):
    """Unrecognised service tag."""

    kind = "InvalidService"

    def __init__(self, tag: object) -> None:
        self.tag = tag
        super().__init__(f"invalid service: {tag!r}")


class InvalidArgumentError(StagingError):
    """A request argument failed validation."""

    kind = "InvalidArgument"


class InvalidNameError(InvalidArgumentError):
    """A name or version spec rejected by a parser."""

    kind = "InvalidName"


class DecryptionFailedError(StagingError):
    """Wrong passphrase, missing passphrase or corrupted envelope."""

    kind = "DecryptionFailed"


class StateFileError(StagingError):
    """The staging file exists but cannot be read or parsed."""

    kind = "StateFile"


class ConflictError(StagingError):
    """Remote state diverged from what a staged change assumes."""

    kind = "Conflict"

    def __init__(self, message: str, names: Optional[List[str]] = None) -> None:
        self.names = list(names or [])
        super().__init__(message)


class DrainConflictError(ConflictError):
    """Drain would overwrite resident items and `force` was not given."""

    def __init__(self, names: List[str]) -> None:
        super().__init__(
            "resident store already has staged changes for: "
            + ", ".join(names)
            + " (use force to resolve with merge/overwrite)",
            names,
        )


class RemoteOperationFailedError(StagingError):
    """Wraps an AWS API error raised by a strategy."""

    kind = "RemoteOperationFailed"

    def __init__(self, operation: str, name: str, cause: BaseException) -> None:
        self.operation = operation
        self.name = name
        self.cause = cause
        super().__init__(f"{operation} {name}: {cause}")


class ResourceNotFoundError(StagingError):
    """The remote item does not exist."""

    kind = "ResourceNotFound"

    def __init__(self, service: str, name: str) -> None:
        self.service = service
        self.name = name
        super().__init__(f"{service} {name!r} not found")


class TransitionError(StagingError):
    """A staging request is not allowed from the item's current staged state."""

    kind = "InvalidTransition"


class OperationCancelledError(StagingError):
    kind = "Cancelled"

    def __init__(self, what: str = "operation") -> None:
        super().__init__(f"{what} cancelled")


__all__ = [
    "StagingError",
    "NotStagedError",
    "InvalidServiceError",
    "InvalidArgumentError",
    "InvalidNameError",
    "DecryptionFailedError",
    "StateFileError",
    "ConflictError",
    "DrainConflictError",
    "RemoteOperationFailedError",
    "ResourceNotFoundError",
    "TransitionError",
    "OperationCancelledError",
]
