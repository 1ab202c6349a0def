from contextlib import contextmanager
from typing import Iterable, List


class GymError(Exception):
    """Base class for every error raised by the services."""

    code = "gym_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def rewrap(self, summary: str) -> "GymError":
        """Same error kind, message prefixed with an operation summary."""
        err = type(self).__new__(type(self))
        GymError.__init__(err, f"{summary}: {self.message}")
        for k, v in self.__dict__.items():
            if k != "message":
                setattr(err, k, v)
        return err


class ValidationError(GymError):
    code = "validation_error"

    def __init__(self, errors: Iterable[str], entity: str = "entity"):
        self.errors: List[str] = list(errors)
        self.entity = entity
        super().__init__(f"invalid {entity}: " + "; ".join(self.errors))


class NotFoundError(GymError):
    code = "not_found"


class InvalidIdentifierError(GymError):
    code = "invalid_identifier"


class PreconditionFailedError(GymError):
    code = "precondition_failed"


class ConflictError(GymError):
    code = "conflict"


class PersistenceError(GymError):
    code = "persistence_error"


@contextmanager
def failing_as(summary: str, log=None):
    """Re-raise any GymError from the block with `summary` prefixed.

    The original error is kept as __cause__.
    """
    try:
        yield
    except GymError as exc:
        if log is not None:
            log.warning(f"{summary}: {exc.message}")
        raise exc.rewrap(summary) from exc


def require(condition, message: str, exc_type=PreconditionFailedError):
    if not condition:
        raise exc_type(message)

