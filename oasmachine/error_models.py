"""
Error response models: the JSON envelope returned for HTTP and validation errors.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import HttpError, ValidationError


class ErrorLocation(BaseModel):
    """Location of a validation error within the request."""

    model_config = ConfigDict(populate_by_name=True)

    in_: str = Field(..., alias="in", description="Where the value came from (query, path, request, ...)")
    name: str = Field(..., description="Parameter name, or 'body' for the request body")
    doc_path: str = Field(..., alias="docPath", description="JSON pointer to the definition in the OpenAPI document")
    path: str = Field("", description="JSON pointer to the offending value within the parameter or body")


class ErrorDetail(BaseModel):
    """A single validation error."""

    message: str
    location: ErrorLocation


class ErrorResponse(BaseModel):
    """Standard error response model.

    Validation failures carry an ``errors`` list; other HTTP errors carry only a
    ``message``.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "Validation errors",
                "errors": [
                    {
                        "message": "Missing required parameter id",
                        "location": {
                            "in": "path",
                            "name": "id",
                            "docPath": "/paths/~1pets~1{id}/get/parameters/0",
                            "path": "",
                        },
                    }
                ],
            }
        },
    )

    message: str = Field(..., description="Human-readable error message")
    errors: Optional[List[ErrorDetail]] = Field(None, description="Individual validation errors")

    def model_dump_json(self, **kwargs: Any) -> str:
        kwargs.setdefault("exclude_none", True)
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "ErrorResponse":
        return cls(
            message=error.message,
            errors=[ErrorDetail.model_validate(detail.to_dict()) for detail in error.errors],
        )

    @classmethod
    def from_http_error(cls, error: HttpError) -> "ErrorResponse":
        if isinstance(error, ValidationError):
            return cls.from_validation_error(error)
        return cls(message=error.message)
