"""
Business-rule failures raised by the quiz services.

Every error carries the status code the API layer answers with, so routes
never have to translate them one by one.
"""


class QuizEngineError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(QuizEngineError):
    """Quiz, question, attempt or answer is missing or not owned by the caller."""
    status_code = 404


class InvalidStateError(QuizEngineError):
    """The operation is not allowed in the current quiz/attempt state."""
    status_code = 400


class PayloadValidationError(QuizEngineError):
    status_code = 422


class PermissionDeniedError(QuizEngineError):
    status_code = 403


class ConflictError(QuizEngineError):
    """A per-attempt write kept losing the optimistic-concurrency race."""
    status_code = 409
