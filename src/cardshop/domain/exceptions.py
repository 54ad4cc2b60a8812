"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer (or any other caller) can catch them uniformly and display
user-friendly messages.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class AmountMismatchError(ValidationError):
    """The paid amount does not match the order amount.

    Treated as an integrity signal: the caller must not retry with the
    same arguments and no state is changed.
    """


class ReservationTrackingUnavailable(DomainException):
    """The card store has no soft-reservation fields."""


class ConfigurationError(DomainException):
    """An environment setting is missing or malformed."""
