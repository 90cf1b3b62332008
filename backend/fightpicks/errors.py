"""Errors raised by the game services.

Every error carries the HTTP status and a stable ``code`` string so clients
can tell "picks locked" apart from "rejoin" without parsing messages.
"""


class GameError(Exception):
    status_code = 400
    code = 'error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'error': self.message, 'code': self.code}


class ValidationError(GameError):
    status_code = 400
    code = 'validation_error'


class NotFoundError(GameError):
    status_code = 404
    code = 'not_found'


class PermissionDeniedError(GameError):
    status_code = 403
    code = 'not_host'


class LockedError(GameError):
    status_code = 403
    code = 'picks_locked'


class NotStartedError(GameError):
    status_code = 409
    code = 'not_started'


class OrderingError(GameError):
    status_code = 409
    code = 'out_of_order'


class StoreError(GameError):
    status_code = 503
    code = 'store_error'
