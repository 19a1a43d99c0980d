# teachtune/core/errors.py


class ScheduleValidationError(ValueError):
    """
    Raised when a recurrence configuration cannot be activated, e.g. an
    active student whose recurrence has no weekday/time slots.
    """


class NotFoundError(LookupError):
    """
    Raised when a student or lesson does not exist or does not belong to
    the calling teacher.
    """


class TransactionFailure(RuntimeError):
    """
    Raised when the purge-and-regenerate step of a student save fails.

    The surrounding session has already been rolled back when this is
    raised, so the student's schedule is left exactly as it was.
    """


class DeliveryFailure(RuntimeError):
    """
    Raised by an alert channel that could not deliver an alert.

    The dispatcher logs and swallows it; it never reaches the scan loop.
    """
