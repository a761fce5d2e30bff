"""Pydantic schemas for job runs and the trigger response envelope."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class TenantResult(BaseModel):
    tenant_id: UUID = Field(alias="tenantID")
    updated_count: int = Field(alias="updatedCount")
    transitions: dict[str, int] = Field(default_factory=dict)
    error: str | None = None

    model_config = {"populate_by_name": True}


class DispatchSummary(BaseModel):
    total: int
    sent: int
    failed: int
    skipped: int


class JobRunEnvelope(BaseModel):
    """Body returned by the job trigger endpoints."""

    success: bool
    records_updated: int = Field(default=0, alias="recordsUpdated")
    tenants: list[TenantResult] = Field(default_factory=list)
    error: str | None = None
    run_id: UUID | None = Field(default=None, alias="runId")
    notifications: DispatchSummary | None = None

    model_config = {"populate_by_name": True}


class JobRunResponse(BaseModel):
    id: UUID
    job_name: str
    started_at: datetime
    completed_at: datetime | None
    status: str
    records_updated: int
    error_message: str | None
    metadata_: dict[str, Any] | None

    model_config = {"from_attributes": True}
