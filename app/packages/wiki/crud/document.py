"""文档计数：目录模块对文档子系统的唯一依赖。"""

from __future__ import annotations

from typing import Dict, Iterable, Protocol

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.packages.wiki.crud.base import CRUDBase
from app.packages.wiki.models.document import Document


class DocumentCounter(Protocol):
    """按目录统计文档数量的接口，可替换为其它实现（例如远程文档服务）。"""

    def count_by_directory(self, db: Session, directory_id: int) -> int: ...

    def counts_by_directories(self, db: Session, directory_ids: Iterable[int]) -> Dict[int, int]: ...

    def count_all(self, db: Session) -> int: ...


class CRUDDocument(CRUDBase[Document]):
    """基于 ``documents`` 表的计数实现。"""

    def count_by_directory(self, db: Session, directory_id: int) -> int:
        return (
            db.query(func.count(Document.id))
            .filter(Document.directory_id == directory_id)
            .scalar()
            or 0
        )

    def counts_by_directories(self, db: Session, directory_ids: Iterable[int]) -> Dict[int, int]:
        """返回 ``{directory_id: count}``，没有文档的目录不出现在结果中。"""
        ids = {int(i) for i in directory_ids}
        if not ids:
            return {}
        rows = (
            db.query(Document.directory_id, func.count(Document.id))
            .filter(Document.directory_id.in_(ids))
            .group_by(Document.directory_id)
            .all()
        )
        return {directory_id: count for directory_id, count in rows}

    def count_all(self, db: Session) -> int:
        """统计已归属目录的文档总数。"""
        return (
            db.query(func.count(Document.id))
            .filter(Document.directory_id.is_not(None))
            .scalar()
            or 0
        )


document_crud = CRUDDocument(Document)
