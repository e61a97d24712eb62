"""Pydantic schemas for background embedding jobs."""

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobPayload(BaseModel):
    """Base for job payloads; accepts camelCase keys from the job producer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkspaceJobPayload(JobPayload):
    """Payload of workspace-wide embedding jobs."""

    workspace_id: uuid.UUID


class PageJobPayload(JobPayload):
    """Payload of page regeneration jobs."""

    page_id: uuid.UUID
    workspace_id: uuid.UUID | None = None


class PageDeleteJobPayload(JobPayload):
    """Payload of page deletion jobs."""

    page_id: uuid.UUID


class EmbeddingJobRequest(BaseModel):
    """A job submitted over HTTP by the job system."""

    name: str = Field(..., min_length=1, description="Job name")
    data: dict[str, Any] = Field(default_factory=dict, description="Job payload")


class EmbeddingJobAccepted(BaseModel):
    """Acknowledgement of a queued job."""

    name: str = Field(..., description="Job name")
    status: str = Field("accepted", examples=["accepted"])
