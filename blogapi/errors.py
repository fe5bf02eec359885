"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``blogapi.main`` turns them into ``{"msg": ...}``
responses with the matching status code.
"""


class APIError(Exception):
    status_code = 500
    default_msg = "Internal Server Error"

    def __init__(self, msg: str | None = None) -> None:
        self.msg = msg or self.default_msg
        super().__init__(self.msg)


class Unauthenticated(APIError):
    status_code = 401
    default_msg = "Authentication required"


class Forbidden(APIError):
    status_code = 403
    default_msg = "Forbidden"


class NotFound(APIError):
    status_code = 404
    default_msg = "Not found"


class Conflict(APIError):
    status_code = 409
    default_msg = "Resource already exists"


class ValidationError(APIError):
    status_code = 400
    default_msg = "Invalid input"


class BadRequest(APIError):
    status_code = 400
    default_msg = "Bad request"


class InvalidToken(Exception):
    """Raised by the credential layer when a token cannot be trusted."""
