# File: wpstudio/api/responses.py
# Purpose: Uniform {ok, code, status, message, data, meta} JSON envelope for every API response
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


class ApiResponse:
    """Builds enveloped JSON responses whose HTTP status matches the body status."""

    @staticmethod
    def success(
        code: str,
        message: str,
        data: Any = None,
        meta: Optional[dict[str, Any]] = None,
        status: int = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> JSONResponse:
        return ApiResponse._make(True, code, status, message, data, meta, headers)

    @staticmethod
    def error(
        code: str,
        message: str,
        meta: Optional[dict[str, Any]] = None,
        data: Any = None,
        status: int = 400,
        headers: Optional[dict[str, str]] = None,
    ) -> JSONResponse:
        return ApiResponse._make(False, code, status, message, data, meta, headers)

    @staticmethod
    def envelope(
        ok: bool,
        code: str,
        status: int,
        message: str,
        data: Any = None,
        meta: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        return {
            "ok": ok,
            "code": code,
            "status": status,
            "message": message,
            "data": data,
            "meta": meta or {},
        }

    @staticmethod
    def _make(
        ok: bool,
        code: str,
        status: int,
        message: str,
        data: Any,
        meta: Optional[dict[str, Any]],
        headers: Optional[dict[str, str]],
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status,
            content=jsonable_encoder(ApiResponse.envelope(ok, code, status, message, data, meta)),
            headers=headers,
        )
