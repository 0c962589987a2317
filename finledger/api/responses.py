"""
Response envelope shared by every API endpoint

    {"success": true, "message": "...", "data": {...}, "timestamp": "..."}
    {"success": false, "message": "...", "error": "...", "timestamp": "..."}

`data` and `error` are left out when empty.
"""
from datetime import datetime, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_serializer


class ApiResponse(BaseModel):
    success: bool
    message: str
    data: Any = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler) -> dict[str, Any]:
        payload = handler(self)
        for key in ("data", "error"):
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload


def ok(message: str, data: Any = None) -> ApiResponse:
    return ApiResponse(success=True, message=message, data=data)


def failure(status_code: int, message: str, error: str | None = None) -> JSONResponse:
    body = ApiResponse(success=False, message=message, error=error or message)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
