"""Database bootstrapping utilities."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.packages.wiki.core.config import get_settings
from app.packages.wiki.db import session as db_session
from app.packages.wiki.models.base import Base
from app.packages.wiki.models.directory import Directory
from app.packages.wiki.models.document import Document  # noqa: F401 - ensure table creation
from app.packages.wiki.utils.path_utils import build_path

logger = logging.getLogger(__name__)

# (名称, 描述, 子目录)
DEFAULT_DIRECTORY_TREE: Sequence[Tuple[str, str, Sequence[Tuple[str, str]]]] = (
    (
        "技术文档",
        "技术相关文档",
        (("API文档", "API接口文档"), ("开发指南", "开发相关指南"), ("部署文档", "部署相关文档")),
    ),
    (
        "产品文档",
        "产品相关文档",
        (("需求文档", "产品需求文档"), ("设计文档", "产品设计文档"), ("用户手册", "用户使用手册")),
    ),
    ("运营文档", "运营相关文档", ()),
)


def init_db() -> None:
    """Create all database tables if they do not exist and seed the default tree."""
    Base.metadata.create_all(bind=db_session.engine)

    if not get_settings().seed_default_directories:
        return

    session = db_session.SessionLocal()
    try:
        seeded = _seed_default_directories(session)
        session.commit()
        if seeded:
            logger.info("Seeded %s default directories", seeded)
    except Exception:
        session.rollback()
        logger.exception("Failed to seed default directories during database initialization")
        raise
    finally:
        session.close()


def _seed_default_directories(db: Session) -> int:
    """目录表为空时写入默认目录结构，返回写入的行数；已有数据时不做任何修改。"""
    if db.query(Directory.id).first() is not None:
        return 0

    count = 0
    for index, (name, description, children) in enumerate(DEFAULT_DIRECTORY_TREE):
        parent = _add(db, name, description, None, None, index)
        count += 1
        for child_index, (child_name, child_description) in enumerate(children):
            _add(db, child_name, child_description, parent.id, parent.path, child_index)
            count += 1
    return count


def _add(
    db: Session,
    name: str,
    description: str,
    parent_id: Optional[int],
    parent_path: Optional[str],
    sort_order: int,
) -> Directory:
    directory = Directory(
        name=name,
        description=description,
        parent_id=parent_id,
        path=build_path(parent_path, name),
        sort_order=sort_order,
    )
    db.add(directory)
    db.flush()
    return directory
