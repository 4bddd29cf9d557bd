from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict
from app.core.error_codes import ErrorCode


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case accepted on input too
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Message(BaseModel):
    message: str


class ErrorResponse(CamelModel):
    error: str
    error_code: ErrorCode
    details: Dict[str, Any] | None = None
