"""
Error taxonomy

Handlers raise these; a single exception handler in main.py renders them as
{"success": false, "errors": message} with the class's status code.
"""


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(StorefrontError):
    status_code = 422


class DuplicateUser(StorefrontError):
    status_code = 400


class UserNotFound(StorefrontError):
    status_code = 404


class InvalidCredentials(StorefrontError):
    status_code = 401


class MissingToken(StorefrontError):
    status_code = 401


class InvalidToken(StorefrontError):
    status_code = 401


class OrderNotFound(StorefrontError):
    status_code = 404


class UploadError(StorefrontError):
    status_code = 400


class PaymentGatewayError(StorefrontError):
    status_code = 502


class PersistenceError(StorefrontError):
    status_code = 503
