"""Uniform response envelope and the camelCase base model."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model whose wire names are camelCase (``fullName``, ``coverImage``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope: ``{statusCode, data, message, success}``."""

    status_code: int = 200
    data: T
    message: str = "Success"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return self.status_code < 400


class ErrorResponse(CamelModel):
    """Error envelope: ``{statusCode, data, message, success, errors}``."""

    status_code: int
    data: None = None
    message: str
    success: bool = False
    errors: list[Any] = Field(default_factory=list)


def error_payload(status_code: int, message: str, errors: list[Any] | None = None) -> dict[str, Any]:
    """Serialized error envelope for a JSONResponse."""
    return ErrorResponse(status_code=status_code, message=message, errors=errors or []).model_dump(
        by_alias=True, mode="json"
    )
