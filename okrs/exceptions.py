"""
Errors raised by the OKR lifecycle, extractor and notifier.

Views map each of these to a JSON response; see okrs.views.
"""


class OKRError(Exception):
    """Base class for OKR errors."""

    status_code = 400

    def __init__(self, message=''):
        super().__init__(message)
        self.message = message


class ValidationError(OKRError):
    """Malformed or out-of-range input. ``errors`` maps field name to message."""

    status_code = 400

    def __init__(self, errors):
        self.errors = dict(errors)
        fields = ', '.join(sorted(self.errors))
        super().__init__(f"Invalid fields: {fields}")


class NotFoundError(OKRError):
    """The OKR does not exist or belongs to someone else."""

    status_code = 404

    def __init__(self, message='OKR not found'):
        super().__init__(message)


class StoreError(OKRError):
    """The database rejected or could not complete the operation."""

    status_code = 503


class NotifierError(OKRError):
    """Email dispatch failed. Logged by the dispatcher, never returned to a caller."""

    status_code = 502


class ExtractionError(OKRError):
    """The uploaded file could not be read as a spreadsheet."""

    status_code = 422

    def __init__(self, message='Failed to parse Excel file. Please check the format.'):
        super().__init__(message)
