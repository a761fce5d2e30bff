"""Error taxonomy for the status job and notification dispatch."""

from __future__ import annotations

from uuid import UUID


class JobError(Exception):
    """Base class for errors raised by the background job pipeline."""


class AuthenticationError(JobError):
    """Missing or invalid job credential. Never retried, never logged as a run."""


class TransientInfrastructureError(JobError):
    """Timeout or dropped connection; worth retrying with backoff."""


class DataIntegrityError(JobError):
    """Constraint violation or malformed tenant configuration.

    Fatal for the affected tenant's batch and not retried.
    """

    def __init__(self, message: str, agency_id: UUID | None = None):
        super().__init__(message)
        self.agency_id = agency_id


class RecipientResolutionError(JobError):
    """A recipient could not be resolved to a deliverable address."""


class DeliveryError(JobError):
    """The outbound email transport rejected or failed a send."""
