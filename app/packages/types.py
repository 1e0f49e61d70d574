"""业务包元数据定义。"""

from __future__ import annotations

from dataclasses import dataclass
from logging import Logger
from typing import Any, Callable

from fastapi import APIRouter


@dataclass(frozen=True)
class AppPackage:
    """业务包暴露给主应用的入口：路由、配置、日志、建表与异常处理器。"""

    name: str
    api_router: APIRouter
    get_settings: Callable[[], Any]
    setup_logging: Callable[[], None]
    logger: Logger
    init_db: Callable[[], None]
    create_response: Callable[..., dict]
    http_exception_handler: Callable[..., Any]
    generic_exception_handler: Callable[..., Any]
    description: str = ""
