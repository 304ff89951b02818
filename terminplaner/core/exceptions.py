class TerminplanerError(Exception):
    """Base class for errors raised by the booking services"""


class NotFoundError(TerminplanerError):
    """Referenced topic, rule, booking, batch config, department or user is absent"""


class ForbiddenError(TerminplanerError):
    """Direct mutation of a batch-owned row or access to someone else's data"""


class BadRequestError(TerminplanerError):
    """Malformed or inconsistent input"""


class ConflictError(TerminplanerError):
    """Requested interval is already taken"""
