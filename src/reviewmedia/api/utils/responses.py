from typing import Any, Optional
from fastapi import Request
from ..schemas.common import ApiResponse, ErrorResponse

def _request_id(request: Request) -> str:
    return request.headers.get("X-Request-ID") or getattr(request.state, "request_id", None) or ""

def ok(request: Request, data: Any = None, message: str = "") -> ApiResponse[Any]:
    req_id = _request_id(request)
    if req_id:
        return ApiResponse(success=True, message=message, request_id=req_id, data=data)
    return ApiResponse(success=True, message=message, data=data)

def fail(request: Request, error: str, message: str, details: Optional[dict] = None) -> ErrorResponse:
    req_id = _request_id(request)
    if req_id:
        return ErrorResponse(error=error, message=message, request_id=req_id, details=details or {})
    return ErrorResponse(error=error, message=message, details=details or {})
