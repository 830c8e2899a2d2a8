from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Generic, Literal, Optional, TypeVar

DataT = TypeVar("DataT")

class ApiModel(BaseModel):
    """Base for outbound payloads: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class ApiResponse(BaseModel, Generic[DataT]):
    status: Literal["success", "error"] = "success"
    message: Optional[str] = None
    data: Optional[DataT] = None

class MessageResponse(BaseModel):
    status: Literal["success", "error"] = "success"
    message: str

def ok(data=None, message: Optional[str] = None) -> ApiResponse:
    return ApiResponse(status="success", message=message, data=data)
