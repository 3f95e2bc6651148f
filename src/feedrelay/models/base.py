"""Base model configuration shared by all FeedRelay models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FeedRelayModel(BaseModel):
    """Base model with standard configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )
