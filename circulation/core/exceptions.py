class CirculationError(Exception):
    """Base for every recoverable circulation failure.

    `context` holds the ids, current state and reason a caller needs to
    render a precise message.
    """

    def __init__(self, message='', **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self):
        return {
            "error": type(self).__name__,
            "message": self.message,
            "context": {k: str(v) if v is not None else None
                        for k, v in self.context.items()},
        }


class NotFoundError(CirculationError): pass

class BookNotFoundError(NotFoundError): pass

class UserNotFoundError(NotFoundError): pass

class RequestNotFoundError(NotFoundError): pass

class LoanNotFoundError(NotFoundError): pass

class InvalidStateError(CirculationError): pass

class AlreadyReturnedError(InvalidStateError): pass

class BookUnavailableError(CirculationError): pass

class MemberNotActiveError(CirculationError): pass

class DuplicateRequestError(CirculationError): pass

class RenewalNotAllowedError(CirculationError): pass

class PermissionDeniedError(CirculationError): pass

class InvalidDurationError(CirculationError): pass

class PersistenceConflictError(CirculationError): pass

class UnavailableError(CirculationError): pass
