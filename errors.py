"""Error taxonomy shared by the stores and the HTTP layer.

Every error carries the HTTP status it maps to and the message a client
may see. ``details`` holds the underlying cause for the logs; only a failed
save reports it back to the client.
"""


class BlogError(Exception):
    status_code = 500
    message = "Internal error"

    def __init__(self, message=None, details=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details

    def to_dict(self):
        return {"error": self.message}


class ValidationError(BlogError):
    """Bad or missing input. Safe to retry after correction."""

    status_code = 400
    message = "Title and content are required"


class ConflictError(BlogError):
    """The collection changed since the caller last read it."""

    status_code = 409
    message = "Blog collection was modified concurrently"


class PersistenceError(BlogError):
    message = "Failed to save blog"

    def to_dict(self):
        body = super().to_dict()
        if self.details:
            body["details"] = self.details
        body["success"] = False
        return body


class UploadError(BlogError):
    message = "Failed to upload file"


class NoFileError(UploadError):
    status_code = 400
    message = "No file uploaded"


class ListError(BlogError):
    message = "Failed to fetch images"


class UnsupportedFileError(UploadError):
    status_code = 400
    message = "Unsupported image type"
