"""Shared pydantic base for API models.

Fields are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(ApiModel):
    error: str
    detail: str
