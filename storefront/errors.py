class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(StorefrontError):
    status_code = 400


class NotFound(StorefrontError):
    status_code = 404


class Conflict(StorefrontError):
    """Duplicate unique key: slug, email or customer/product review pair."""

    status_code = 400
