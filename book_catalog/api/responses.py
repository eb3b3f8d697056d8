"""
JSON response envelope

Every API response has the shape
``{success, message?, data?, error?, code?}``.
"""
from typing import Any, Optional

from pydantic import BaseModel
from starlette.responses import JSONResponse

from ..models import ServiceError, ErrorResponse


def _encode(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode='json')
    if isinstance(data, (list, tuple)):
        return [_encode(item) for item in data]
    return data


def success(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = _encode(data)
    return JSONResponse(body, status_code=status_code)


def error(err: ErrorResponse, status_code: int, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(err.to_dict(), status_code=status_code, headers=headers)


def from_service_error(exc: ServiceError, request_id: Optional[str] = None) -> JSONResponse:
    return error(exc.to_response(request_id), exc.status_code)
