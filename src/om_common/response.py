"""Envelope shared by every endpoint, success or error.

{
    "code": 0,            // 0 on success, AppError code otherwise
    "message": "success",
    "data": { ... },      // null on error
    "timestamp": "...",
    "request_id": "..."   // echoed in the X-Request-ID header
}
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from src.om_common.datetime_utils import utc_now


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=new_request_id)


def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    return ApiResponse(code=0, message=message, data=data)


def error_response(code: int, message: str, request_id: str | None = None) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, data=None)
    if request_id:
        resp.request_id = request_id
    return resp
