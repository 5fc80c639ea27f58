class BookingException(Exception):
    pass


class ValidationError(BookingException):
    """Malformed input: missing field, end before start, negative amount."""


class NotFoundError(BookingException):
    """Referenced record doesn't exist or belongs to another tenant."""


class BusinessRuleViolation(BookingException):
    """Capacity exhausted, schedule conflict, invalid transition, inactive entity."""
