"""异常处理模块：定义统一的业务异常与响应格式。"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.packages.wiki.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
    HTTP_STATUS_NOT_FOUND,
)
from app.packages.wiki.core.enums import DirectoryErrorKind
from app.packages.wiki.core.logger import get_request_id, logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


_KIND_STATUS = {
    DirectoryErrorKind.VALIDATION: HTTP_STATUS_BAD_REQUEST,
    DirectoryErrorKind.NOT_FOUND: HTTP_STATUS_NOT_FOUND,
    DirectoryErrorKind.PARENT_NOT_FOUND: HTTP_STATUS_BAD_REQUEST,
    DirectoryErrorKind.SOURCE_NOT_FOUND: HTTP_STATUS_NOT_FOUND,
    DirectoryErrorKind.TARGET_PARENT_NOT_FOUND: HTTP_STATUS_BAD_REQUEST,
    DirectoryErrorKind.INVALID_PARENT: HTTP_STATUS_BAD_REQUEST,
    DirectoryErrorKind.INVALID_TARGET: HTTP_STATUS_BAD_REQUEST,
    DirectoryErrorKind.INVALID_DIRECTORY_PARENT: HTTP_STATUS_BAD_REQUEST,
    DirectoryErrorKind.CIRCULAR_REFERENCE: HTTP_STATUS_BAD_REQUEST,
    DirectoryErrorKind.PATH_EXISTS: HTTP_STATUS_CONFLICT,
    DirectoryErrorKind.NOT_EMPTY: HTTP_STATUS_BAD_REQUEST,
    DirectoryErrorKind.STORAGE_FAILURE: HTTP_STATUS_INTERNAL_SERVER_ERROR,
}


class DirectoryError(AppException):
    """目录操作失败。

    ``kind`` 区分失败类别；``data`` 固定包含 ``error`` 字段（类别值），
    其余字段为附加信息，例如 ``NOT_EMPTY`` 会附带删除检查结果与提示信息。
    """

    def __init__(
        self,
        kind: DirectoryErrorKind,
        msg: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.kind = kind
        self.details = dict(details or {})
        super().__init__(msg, _KIND_STATUS[kind], {"error": kind.value, **self.details})

    @property
    def message(self) -> str:
        return self.detail

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}"


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    payload = {"msg": exc.detail, "data": getattr(exc, "data", None), "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    payload = {
        "msg": "服务器内部错误",
        "data": {"request_id": get_request_id()},
        "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)
