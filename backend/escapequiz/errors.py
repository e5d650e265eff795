"""Error taxonomy shared by the HTTP routes, socket handlers and services.

Services raise these; ``create_app`` registers a handler that renders them
as ``{"error": <code>, "message": <text>}`` with the matching status code.
"""


class QuizError(Exception):
    code = 'internal'
    status = 500
    default_message = 'An error occurred'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class Unauthenticated(QuizError):
    code = 'unauthenticated'
    status = 401
    default_message = 'User must be logged in'


class PermissionDenied(QuizError):
    code = 'permission-denied'
    status = 403
    default_message = 'Not allowed'


class InvalidArgument(QuizError):
    code = 'invalid-argument'
    status = 400
    default_message = 'Invalid argument'


class NotFound(QuizError):
    code = 'not-found'
    status = 404
    default_message = 'Not found'


class Conflict(QuizError):
    code = 'conflict'
    status = 409
    default_message = 'Conflicting state'


class Internal(QuizError):
    code = 'internal'
    status = 500
    default_message = 'An internal error occurred'
