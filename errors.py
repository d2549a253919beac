"""
Errors raised by the data-access layer and the domain helpers.

Routes turn them into a flash message (pages) or a JSON error body (AJAX).
"""


class BackOfficeError(Exception):
    """Base class; ``status_code`` is what a JSON endpoint answers with."""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class DataAccessError(BackOfficeError):
    status_code = 500


class NotFound(BackOfficeError):
    status_code = 404


class ValidationError(BackOfficeError):
    pass


class InvalidStatus(ValidationError):
    pass


class StockError(ValidationError):
    pass


class SpinNotAllowed(BackOfficeError):
    status_code = 429


class ImageRejected(ValidationError):
    pass
