"""Request and response schemas for workflow triggers."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TriggerRequest(BaseModel):
    """Request schema for POST /v1/workflows/trigger."""

    event: str = Field(default="", description="Event name, e.g. greet/user")
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = {
        "json_schema_extra": {
            "example": {"event": "greet/user", "data": {"name": "Ada"}}
        }
    }


class TriggerResponse(BaseModel):
    event: str
    event_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NewsAnalysisRequest(BaseModel):
    """Request schema for POST /v1/workflows/news."""

    query: str = Field(..., min_length=1, description="Topic to search news for")
    limit: int = Field(default=5, ge=1, le=20, description="Maximum articles to analyse")


class NewsAnalysisResponse(BaseModel):
    run_id: str
    status: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
