"""
Error taxonomy shared by every service.

Each error carries the HTTP status the dispatcher renders it with.
Anything outside this hierarchy is rendered as a 500.
"""


class QuadError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class TokenError(QuadError):
    pass


class MalformedToken(TokenError):
    pass


class ExpiredToken(TokenError):
    pass


class UnsupportedContentType(QuadError):
    pass


class MissingStorageBinding(QuadError):
    pass


class QueryError(QuadError):
    pass


class ExecutionError(QuadError):
    pass


class BadRequest(QuadError):
    status_code = 400


class Unauthorized(QuadError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(QuadError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)
