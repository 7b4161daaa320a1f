from pydantic import BaseModel


class ApiErrorResponse(BaseModel):
    """Error envelope returned by every RetailFlow endpoint."""

    code: str
    message: str
    details: dict | None = None
    trace_id: str


class ApiValidationErrorItem(BaseModel):
    field: str | None
    message: str
    type: str
    loc: list[str | int]


class ApiValidationErrorDetails(BaseModel):
    errors: list[ApiValidationErrorItem]


class ApiValidationErrorResponse(ApiErrorResponse):
    details: ApiValidationErrorDetails
