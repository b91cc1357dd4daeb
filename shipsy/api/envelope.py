from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from shipsy.application.pagination import build_meta
from shipsy.application.schemas import ApiResponse, PageOf, PaginationMeta
from shipsy.infrastructure.repository import Page


def ok(data: Any = None, message: str = "Success") -> ApiResponse:
    return ApiResponse(message=message, data=data)


def paged(page: Page, page_number: int, limit: int, item_model, message: str) -> ApiResponse:
    body = PageOf[item_model](
        items=[item_model.model_validate(item) for item in page.items],
        meta=PaginationMeta(**build_meta(page_number, limit, page.total)),
    )
    return ApiResponse(message=message, data=body)


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error": {"code": code, "message": message, "details": details},
        },
    )
