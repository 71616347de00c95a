"""
Domain errors raised synchronously to callers of the export service.

The API layer maps them to HTTP responses:
    InvalidFiltersError     → 422
    JobNotFoundError        → 404
    IllegalTransitionError  → 409

Errors inside staged ticks and notification delivery are NOT raised through
here — they are logged where they happen and the job is left for recovery.
"""


class ExportError(Exception):
    """Base class for export pipeline errors."""


class InvalidFiltersError(ExportError):
    """The submitted filter blob failed validation. No job was created."""


class JobNotFoundError(ExportError):

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class IllegalTransitionError(ExportError):

    def __init__(self, job_id: str, status: str, reason: str):
        super().__init__(reason)
        self.job_id = job_id
        self.status = status
        self.reason = reason
