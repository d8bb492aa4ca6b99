from typing import Dict


class ValidationError(ValueError):
    """Raised when submitted form data fails the client-side rules.

    `errors` maps the form field name to one human-readable message.
    """

    def __init__(self, errors: Dict[str, str]):
        super().__init__(", ".join(sorted(errors)))
        self.errors = dict(errors)


class UploadError(RuntimeError):
    """Raised when a photo could not be written to blob storage."""
