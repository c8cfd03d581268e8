"""Pydantic schemas for the gateway action dispatch endpoint."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GatewayRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    action: str = Field(min_length=1, max_length=64)
    account_id: int
    data: dict[str, Any] | None = None
