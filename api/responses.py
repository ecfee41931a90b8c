"""Uniform JSON envelope: {success, message, data?, errors?}."""
from typing import Any, Dict, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(
    data: Any = None,
    message: str = "Success",
    status_code: int = status.HTTP_200_OK
) -> JSONResponse:
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def error_response(
    message: str,
    status_code: int,
    errors: Optional[List[Dict[str, Any]]] = None
) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def paged(key: str, items: List[Any], meta: Dict[str, Any]) -> Dict[str, Any]:
    """Shape a list payload as {key: items, pagination: meta}."""
    return {key: items, "pagination": meta}
