from __future__ import annotations

from typing import TypedDict


class ErrorDetail(TypedDict):
    code: str
    message: str


class ErrorEnvelope(TypedDict):
    error: ErrorDetail


def api_error(code: str, message: str) -> ErrorEnvelope:
    return {"error": {"code": code, "message": message}}
