# FILE: herbal_ledger/schemas/common.py
from __future__ import annotations

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ApiError(BaseModel):
    msg: str


class ApiResponse(BaseModel):
    status: bool
    message: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[ApiError] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ServiceResult(BaseModel):
    """
    What every public ledger operation hands back instead of raising:
    success flag, a human readable message and the payload, if any.
    """
    success: bool
    message: str = ""
    data: Optional[Any] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def ok(cls, message: str = "", data: Any = None) -> "ServiceResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, data: Any = None) -> "ServiceResult":
        return cls(success=False, message=message, data=data)
