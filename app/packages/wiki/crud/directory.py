"""目录 CRUD：目录树的持久化读写，包括多行路径改写与同级重排。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session

from app.packages.wiki.core.constants import ROOT_PATH
from app.packages.wiki.crud.base import CRUDBase
from app.packages.wiki.crud.document import DocumentCounter, document_crud
from app.packages.wiki.models.directory import Directory
from app.packages.wiki.utils.path_utils import get_ancestor_paths, get_descendant_path_prefix


@dataclass(frozen=True)
class PathUpdate:
    """级联改写中的一行：目录 ID 与它的新路径。"""

    id: int
    new_path: str


class CRUDDirectory(CRUDBase[Directory]):
    """提供目录树相关的查询与批量写入。

    ``update_paths`` 与 ``reorder_siblings`` 在 ``auto_commit=True`` 时自成一个事务，
    任一行写入失败都会整体回滚；``auto_commit=False`` 时只 flush，由调用方提交。
    """

    def __init__(self, model=Directory, document_counter: Optional[DocumentCounter] = None):
        super().__init__(model)
        self.document_counter: DocumentCounter = document_counter or document_crud

    # ------------------------------------------------------------------
    # 单行查询
    # ------------------------------------------------------------------

    def get_by_path(self, db: Session, path: str) -> Optional[Directory]:
        return self.query(db).filter(Directory.path == path).first()

    def path_exists(self, db: Session, path: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Directory.id).filter(Directory.path == path)
        if exclude_id is not None:
            query = query.filter(Directory.id != exclude_id)
        return query.first() is not None

    # ------------------------------------------------------------------
    # 列表查询
    # ------------------------------------------------------------------

    def list_by_parent(
        self,
        db: Session,
        parent_id: Optional[int],
        *,
        sort_by: str = "sort_order",
        sort_order: str = "ASC",
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Directory]:
        """返回某个父目录下的直接子目录；``parent_id=None`` 表示根级目录。"""
        query = self._filter_parent(self.query(db), parent_id)
        query = self._apply_sort(query, sort_by, sort_order)
        if skip:
            query = query.offset(max(skip, 0))
        if limit is not None:
            query = query.limit(max(limit, 1))
        return query.all()

    def count_children(self, db: Session, parent_id: Optional[int]) -> int:
        query = self._filter_parent(db.query(func.count(Directory.id)), parent_id)
        return query.scalar() or 0

    def list_with_filters(
        self,
        db: Session,
        *,
        name: Optional[str] = None,
        parent_id: Optional[int] = None,
        root_only: bool = False,
        path_prefix: Optional[str] = None,
        sort_by: str = "sort_order",
        sort_order: str = "ASC",
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[Directory], int]:
        """按名称子串、父目录、路径前缀过滤，返回分页结果与总数。"""
        query = self.query(db)

        if name:
            trimmed = name.strip()
            if trimmed:
                query = query.filter(Directory.name.icontains(trimmed, autoescape=True))
        if root_only:
            query = query.filter(Directory.parent_id.is_(None))
        elif parent_id is not None:
            query = query.filter(Directory.parent_id == parent_id)
        if path_prefix:
            query = self._filter_path_prefix(query, path_prefix)

        total = query.count()
        query = self._apply_sort(query, sort_by, sort_order).offset(max(skip, 0))
        if limit is not None:
            query = query.limit(max(limit, 1))
        return query.all(), total

    def list_all(self, db: Session) -> List[Directory]:
        return self.query(db).order_by(Directory.path.asc()).all()

    # ------------------------------------------------------------------
    # 祖先 / 后代
    # ------------------------------------------------------------------

    def list_descendants_by_path(self, db: Session, path: str, *, for_update: bool = False) -> List[Directory]:
        """返回路径严格位于 ``path`` 之下的所有目录，按路径排序（祖先先于后代）。"""
        query = self.query(db)
        if path != ROOT_PATH:
            query = self._filter_path_prefix(query, get_descendant_path_prefix(path))
        query = query.order_by(Directory.path.asc())
        if for_update:
            query = query.with_for_update()
        return query.all()

    def get_descendants(self, db: Session, directory_id: int) -> List[Directory]:
        directory = self.get(db, directory_id)
        if directory is None:
            return []
        return self.list_descendants_by_path(db, directory.path)

    def get_ancestors(self, db: Session, directory_id: int) -> List[Directory]:
        """返回所有祖先目录，按从根到叶的顺序。"""
        directory = self.get(db, directory_id)
        if directory is None:
            return []
        ancestor_paths = [p for p in get_ancestor_paths(directory.path) if p != ROOT_PATH]
        if not ancestor_paths:
            return []
        return (
            self.query(db)
            .filter(Directory.path.in_(ancestor_paths))
            .order_by(func.length(Directory.path).asc())
            .all()
        )

    # ------------------------------------------------------------------
    # 批量写入
    # ------------------------------------------------------------------

    def update_paths(
        self,
        db: Session,
        updates: Sequence[PathUpdate],
        *,
        auto_commit: bool = True,
    ) -> int:
        """把每个目录的 ``path`` 改写为给定的新路径，返回改写的行数。

        新路径在写入前已全部算好，这里只负责一次性落库：任一 ID 不存在或任一行
        违反唯一约束时整批失败。
        """
        if not updates:
            return 0

        new_paths = {item.id: item.new_path for item in updates}
        try:
            rows = self.list_by_ids(db, new_paths)
            if len(rows) != len(new_paths):
                missing = sorted(set(new_paths) - {row.id for row in rows})
                raise NoResultFound(f"directories not found for path update: {missing}")
            for row in rows:
                row.path = new_paths[row.id]
            db.flush()
            if auto_commit:
                db.commit()
        except Exception:
            if auto_commit:
                db.rollback()
            raise
        return len(rows)

    def get_next_sort_order(self, db: Session, parent_id: Optional[int]) -> int:
        """同级最大 ``sort_order`` + 1；没有同级目录时为 0。"""
        query = self._filter_parent(
            db.query(func.coalesce(func.max(Directory.sort_order), -1) + 1),
            parent_id,
        )
        return int(query.scalar() or 0)

    def reorder_siblings(
        self,
        db: Session,
        parent_id: Optional[int],
        ordered_ids: Sequence[int],
        *,
        auto_commit: bool = True,
    ) -> None:
        """按 ``ordered_ids`` 的位置重写 ``sort_order``（0, 1, 2, ...）。"""
        if not ordered_ids:
            return

        positions = {directory_id: index for index, directory_id in enumerate(ordered_ids)}
        try:
            rows = self._filter_parent(self.query(db), parent_id).filter(Directory.id.in_(positions)).all()
            if len(rows) != len(positions):
                missing = sorted(set(positions) - {row.id for row in rows})
                raise NoResultFound(f"siblings not found under parent {parent_id}: {missing}")
            for row in rows:
                row.sort_order = positions[row.id]
            db.flush()
            if auto_commit:
                db.commit()
        except Exception:
            if auto_commit:
                db.rollback()
            raise

    # ------------------------------------------------------------------
    # 文档计数与删除检查
    # ------------------------------------------------------------------

    def get_document_count(self, db: Session, directory_id: int) -> int:
        return self.document_counter.count_by_directory(db, directory_id)

    def get_document_counts(self, db: Session, directory_ids: Iterable[int]) -> Dict[int, int]:
        return self.document_counter.counts_by_directories(db, directory_ids)

    def check_delete_status(self, db: Session, directory_id: int) -> Optional[Dict[str, Any]]:
        """汇总删除前检查信息；目录不存在时返回 ``None``。

        仅“直接子目录”与“直接文档”会阻止删除，后代文档数只作为提示。
        """
        directory = self.get(db, directory_id)
        if directory is None:
            return None

        children_count = self.count_children(db, directory_id)
        document_count = self.get_document_count(db, directory_id)

        descendants = self.list_descendants_by_path(db, directory.path)
        descendant_counts = self.get_document_counts(db, [d.id for d in descendants])
        descendant_documents = sum(descendant_counts.values())
        total_document_count = document_count + descendant_documents

        warnings: List[str] = []
        if children_count:
            warnings.append(f"该目录包含 {children_count} 个子目录")
        if document_count:
            warnings.append(f"该目录包含 {document_count} 个文档")
        if descendant_documents:
            warnings.append(f"子目录中包含 {descendant_documents} 个文档")
        if descendants:
            warnings.append(f"删除操作将影响 {len(descendants) + 1} 个目录")

        has_children = children_count > 0
        has_documents = document_count > 0
        return {
            "can_delete": not has_children and not has_documents,
            "has_children": has_children,
            "has_documents": has_documents,
            "children_count": children_count,
            "document_count": document_count,
            "total_document_count": total_document_count,
            "warnings": warnings,
        }

    # ------------------------------------------------------------------
    # 统计
    # ------------------------------------------------------------------

    def get_stats(self, db: Session) -> Dict[str, int]:
        depth = func.length(Directory.path) - func.length(func.replace(Directory.path, "/", ""))
        total, roots, max_depth = db.query(
            func.count(Directory.id),
            func.count(Directory.id).filter(Directory.parent_id.is_(None)),
            func.coalesce(func.max(depth), 0),
        ).one()
        return {
            "total_directories": int(total or 0),
            "root_directories": int(roots or 0),
            "max_depth": int(max_depth or 0),
            "total_documents": int(self.document_counter.count_all(db)),
        }

    # ------------------------------------------------------------------
    # 辅助方法
    # ------------------------------------------------------------------

    @staticmethod
    def _filter_parent(query, parent_id: Optional[int]):
        if parent_id is None:
            return query.filter(Directory.parent_id.is_(None))
        return query.filter(Directory.parent_id == parent_id)

    @staticmethod
    def _filter_path_prefix(query, prefix: str):
        # SQLite 的 LIKE 对 ASCII 不区分大小写，再用 substr 做一次精确比较
        return query.filter(
            Directory.path.startswith(prefix, autoescape=True),
            func.substr(Directory.path, 1, len(prefix)) == prefix,
        )

    @staticmethod
    def _apply_sort(query, sort_by: str, sort_order: str):
        column = getattr(Directory, sort_by)
        ordered = column.desc() if sort_order.upper() == "DESC" else column.asc()
        return query.order_by(ordered, Directory.id.asc())


directory_crud = CRUDDirectory(Directory)
