class QuizError(Exception):
    """Base class for errors surfaced to the caller of a quiz operation."""
    status_code = 500
    error = "quiz_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(QuizError):
    """Entity is absent or soft-deleted."""
    status_code = 404
    error = "not_found"


class ForbiddenError(QuizError):
    """Caller is authenticated but not allowed (not enrolled, not the course owner)."""
    status_code = 403
    error = "forbidden"


class BadRequestError(QuizError):
    """A business precondition was violated."""
    status_code = 400
    error = "bad_request"
