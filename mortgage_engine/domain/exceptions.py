"""Domain-specific exceptions"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class FieldError:
    """Single field-level validation failure"""

    field: str
    message: str


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Request is malformed (bad term, negative principal, down payment above price...)"""

    def __init__(self, errors: List[FieldError] | str):
        if isinstance(errors, str):
            errors = [FieldError(field="__root__", message=errors)]
        self.errors = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors))


class NotFoundError(DomainException):
    """Referenced bank, rate or application does not exist"""

    pass


class ForbiddenError(DomainException):
    """Application accessed by someone other than its owner"""

    pass


class ConflictError(DomainException):
    """Application number collided on every retry"""

    pass


class InvalidTransitionError(DomainException):
    """Lifecycle transition attempted from an incompatible status"""

    pass


class ApplicationNumberTakenError(DomainException):
    """Storage rejected an application number as a duplicate"""

    pass


class PropertyCatalogError(DomainException):
    """Property service returned an error or is unavailable"""

    pass
