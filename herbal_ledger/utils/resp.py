# FILE: herbal_ledger/utils/resp.py
from __future__ import annotations

from typing import Any, Optional
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from herbal_ledger.schemas.common import ApiResponse, ApiError, ServiceResult


def ok(data: Any = None, status_code: int = 200,
       message: Optional[str] = None) -> JSONResponse:
    # encode first so Decimal amounts go out as JSON numbers, not strings
    payload = ApiResponse(status=True, message=message, data=jsonable_encoder(data))
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def err(msg: str, status_code: int = 400) -> JSONResponse:
    payload = ApiResponse(status=False, error=ApiError(msg=msg))
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def from_result(result: ServiceResult, status_code: int = 200) -> JSONResponse:
    """Map a service {success, message, data} onto the API envelope."""
    if result.success:
        return ok(result.data, status_code=status_code, message=result.message)
    return err(result.message, status_code=400)
