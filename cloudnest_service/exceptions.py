"""Errors raised towards callers, each carrying the HTTP status the API reports.

main.py renders any UploadServiceError as ``{"detail": message}``.
"""

class UploadServiceError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

class BadRequestError(UploadServiceError):
    status_code = 400

class UnauthorizedError(UploadServiceError):
    status_code = 401

class NotFoundError(UploadServiceError):
    status_code = 404

class PayloadTooLargeError(UploadServiceError):
    status_code = 413

class UnsupportedMediaTypeError(UploadServiceError):
    status_code = 415

class InternalStorageError(UploadServiceError):
    status_code = 500

class FileRemovalAdvisory(Exception):
    """Metadata entry deleted but the disk file stayed. Logged, never raised."""

    def __init__(self, stored_name: str, reason: str):
        super().__init__(f"Failed to remove stored file '{stored_name}': {reason}")
        self.stored_name = stored_name
        self.reason = reason
