"""RecruitDash — Error Taxonomy.

Engines raise these; API routes map them onto HTTP status codes.
"""

from fastapi import HTTPException


class RecruitDashError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(RecruitDashError):
    """Malformed input: bad date, negative count, wrong type, unknown source."""

    status_code = 400


class NotFoundError(RecruitDashError):
    """Referenced clinic, goal or hire does not exist."""

    status_code = 404


class StorageError(RecruitDashError):
    """An upsert or query against the store failed."""

    status_code = 500


def as_http_exception(err: RecruitDashError) -> HTTPException:
    return HTTPException(status_code=err.status_code, detail=err.message)
