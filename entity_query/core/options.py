"""Query-building options."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class QueryOptions(BaseModel):
    """Limits applied while walking foreign-key graphs.

    ``strict_cycles`` turns a revisited reference into a ReferenceCycleError
    instead of leaving the repeated reference unjoined.
    """

    model_config = ConfigDict(frozen=True)

    max_join_depth: int = Field(default=16, ge=1)
    strict_cycles: bool = False
