"""目录业务逻辑：创建、更新、移动、删除、排序与复制。

每个写操作都在同一个会话事务内完成“校验 -> 读取 -> 计算 -> 写入”：
- 输入格式错误在访问数据库之前抛出 ``VALIDATION``；
- 引用/结构错误在任何写入之前抛出，事务回滚后数据保持原样；
- 写入阶段的数据库异常会整体回滚并以 ``STORAGE_FAILURE`` 抛出，不做重试。
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.wiki.core.config import get_settings
from app.packages.wiki.core.constants import (
    COPY_NAME_SUFFIX,
    DIRECTORY_DESCRIPTION_MAX_LENGTH,
    DIRECTORY_NAME_MAX_LENGTH,
    DIRECTORY_PATH_MAX_LENGTH,
    DIRECTORY_SORT_DIRECTIONS,
    DIRECTORY_SORT_FIELDS,
    ROOT_BREADCRUMB_NAME,
    ROOT_PATH,
)
from app.packages.wiki.core.enums import DirectoryErrorKind
from app.packages.wiki.core.exceptions import DirectoryError
from app.packages.wiki.core.logger import logger
from app.packages.wiki.core.timezone import format_datetime
from app.packages.wiki.crud.directory import CRUDDirectory, PathUpdate, directory_crud
from app.packages.wiki.models.directory import Directory
from app.packages.wiki.services.tree_builder import build_tree
from app.packages.wiki.utils.name_rules import (
    sanitize_name,
    validate_description,
    validate_name,
    validate_sort_order,
)
from app.packages.wiki.utils.path_utils import (
    build_path,
    get_level,
    get_parent_path,
    norm_abs_path,
    parse_path_info,
    replace_path_prefix,
    would_create_cycle,
)

_UPDATABLE_FIELDS = frozenset({"name", "description", "parent_id", "sort_order"})


class DirectoryService:
    """封装目录树的用例层逻辑。"""

    def __init__(self, crud: CRUDDirectory = directory_crud) -> None:
        self.crud = crud

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def get_directory(self, db: Session, *, directory_id: int) -> Optional[Dict[str, Any]]:
        """返回目录详情（附带直接文档数），不存在时返回 ``None``。"""
        directory = self.crud.get(db, directory_id)
        if directory is None:
            return None
        count = self.crud.get_document_count(db, directory_id)
        return self._serialize(directory, document_count=count, total_document_count=count)

    def list_directories(
        self,
        db: Session,
        *,
        parent_id: Optional[int] = None,
        root_only: bool = False,
        name: Optional[str] = None,
        path_prefix: Optional[str] = None,
        include_children: bool = False,
        include_documents: bool = False,
        sort_by: str = "sort_order",
        sort_order: str = "ASC",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """按条件列出目录；``include_children`` 时以树形返回。"""
        sort_order = (sort_order or "ASC").upper()
        if sort_by not in DIRECTORY_SORT_FIELDS:
            self._fail_validation(f"sort_by 必须是 {'、'.join(DIRECTORY_SORT_FIELDS)} 之一")
        if sort_order not in DIRECTORY_SORT_DIRECTIONS:
            self._fail_validation("sort_order 必须是 ASC 或 DESC")
        max_limit = get_settings().directory_list_max_limit
        if limit is not None and not 1 <= limit <= max_limit:
            self._fail_validation(f"limit 必须是 1-{max_limit} 之间的整数")
        if offset < 0:
            self._fail_validation("offset 必须是非负整数")
        if root_only and parent_id is not None:
            self._fail_validation("root_only 与 parent_id 不能同时使用")

        items, total = self.crud.list_with_filters(
            db,
            name=name,
            parent_id=parent_id,
            root_only=root_only,
            path_prefix=norm_abs_path(path_prefix) if path_prefix else None,
            sort_by=sort_by,
            sort_order=sort_order,
            skip=offset,
            limit=limit,
        )

        counts: Optional[Dict[int, int]] = None
        if include_documents:
            counts = self.crud.get_document_counts(db, [item.id for item in items])

        if include_children:
            tree = build_tree(items, counts)
            return {"directories": tree, "total": len(tree)}

        directories = []
        for item in items:
            count = counts.get(item.id, 0) if counts is not None else None
            directories.append(self._serialize(item, document_count=count, total_document_count=count))
        return {"directories": directories, "total": total}

    def get_tree(self, db: Session) -> List[Dict[str, Any]]:
        """返回完整目录树，带直接与累计文档数。"""
        items = self.crud.list_all(db)
        counts = self.crud.get_document_counts(db, [item.id for item in items])
        return build_tree(items, counts)

    def get_path_info(self, db: Session, *, directory_id: int) -> Dict[str, Any]:
        """返回目录本身、祖先、直接子目录与面包屑。"""
        directory = self._get_or_fail(db, directory_id, DirectoryErrorKind.NOT_FOUND, "目录不存在")
        ancestors = self.crud.get_ancestors(db, directory_id)
        children = self.crud.list_by_parent(db, directory_id)

        ids_by_path = {ancestor.path: ancestor.id for ancestor in ancestors}
        ids_by_path[directory.path] = directory.id
        breadcrumb = [{"id": 0, "name": ROOT_BREADCRUMB_NAME, "path": ROOT_PATH, "level": 0}]
        for segment in parse_path_info(directory.path):
            breadcrumb.append(
                {
                    "id": ids_by_path.get(segment.path),
                    "name": segment.name,
                    "path": segment.path,
                    "level": segment.level,
                }
            )

        return {
            "directory": self._serialize(directory),
            "ancestors": [self._serialize(item) for item in ancestors],
            "children": [self._serialize(item) for item in children],
            "breadcrumb": breadcrumb,
        }

    def check_delete_status(self, db: Session, *, directory_id: int) -> Dict[str, Any]:
        status = self.crud.check_delete_status(db, directory_id)
        if status is None:
            raise DirectoryError(DirectoryErrorKind.NOT_FOUND, "目录不存在", {"id": directory_id})
        return status

    def get_stats(self, db: Session) -> Dict[str, int]:
        return self.crud.get_stats(db)

    # ------------------------------------------------------------------
    # 写操作
    # ------------------------------------------------------------------

    def create_directory(
        self,
        db: Session,
        *,
        name: str,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        sort_order: Optional[int] = None,
    ) -> Dict[str, Any]:
        """在指定父目录（缺省为根级）下创建目录。"""
        self._validate_name(name)
        self._validate_description(description)
        self._validate_sort_order(sort_order)

        with self._transaction(db, "create"):
            parent_path = ROOT_PATH
            if parent_id is not None:
                parent = self._get_or_fail(
                    db, parent_id, DirectoryErrorKind.PARENT_NOT_FOUND, "父目录不存在", for_update=True
                )
                parent_path = parent.path

            path = build_path(parent_path, name)
            self._ensure_path_length(path)
            if self.crud.path_exists(db, path):
                raise DirectoryError(
                    DirectoryErrorKind.PATH_EXISTS, "该路径下已存在同名目录", {"path": path}
                )

            if sort_order is None:
                sort_order = self.crud.get_next_sort_order(db, parent_id)

            directory = self.crud.create(
                db,
                {
                    "name": sanitize_name(name),
                    "description": description,
                    "parent_id": parent_id,
                    "path": path,
                    "sort_order": sort_order,
                },
                auto_commit=False,
            )

        logger.info("Directory created: id=%s path=%s", directory.id, directory.path)
        return self._serialize(directory)

    def update_directory(self, db: Session, *, directory_id: int, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """局部更新目录。

        ``changes`` 只包含需要修改的字段：缺少的字段保持不变，``parent_id=None``
        表示移到根级。名称或父目录变化导致路径改变时，所有后代的路径在同一事务内改写。
        """
        changes = dict(changes)
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            self._fail_validation(f"不支持更新的字段：{', '.join(sorted(unknown))}")
        if "name" in changes:
            self._validate_name(changes["name"])
        if "description" in changes:
            self._validate_description(changes["description"])
        self._validate_sort_order(changes.get("sort_order"))

        with self._transaction(db, "update"):
            directory = self._get_or_fail(
                db, directory_id, DirectoryErrorKind.NOT_FOUND, "目录不存在", for_update=True
            )
            old_path = directory.path
            new_parent_path = get_parent_path(old_path)

            parent_changed = "parent_id" in changes and changes["parent_id"] != directory.parent_id
            if parent_changed:
                new_parent_id = changes["parent_id"]
                if new_parent_id == directory.id:
                    raise DirectoryError(
                        DirectoryErrorKind.INVALID_PARENT, "目录不能设置自己为父目录", {"id": directory_id}
                    )
                if new_parent_id is None:
                    new_parent_path = ROOT_PATH
                else:
                    parent = self._get_or_fail(
                        db, new_parent_id, DirectoryErrorKind.PARENT_NOT_FOUND, "父目录不存在", for_update=True
                    )
                    if would_create_cycle(old_path, parent.path):
                        raise DirectoryError(
                            DirectoryErrorKind.CIRCULAR_REFERENCE,
                            "不能将目录移动到其子目录下",
                            {"id": directory_id, "parent_id": new_parent_id},
                        )
                    new_parent_path = parent.path

            new_name = sanitize_name(changes["name"]) if "name" in changes else directory.name
            new_path = build_path(new_parent_path, new_name)
            affected = self._plan_cascade(db, directory, new_path)

            directory.name = new_name
            directory.path = new_path
            if parent_changed:
                directory.parent_id = changes["parent_id"]
            if "description" in changes:
                directory.description = changes["description"]
            if changes.get("sort_order") is not None:
                directory.sort_order = changes["sort_order"]

            self.crud.save(db, directory, auto_commit=False)
            self.crud.update_paths(db, self._as_path_updates(affected), auto_commit=False)

        if new_path != old_path:
            logger.info(
                "Directory updated: id=%s path %s -> %s, %s descendants rewritten",
                directory_id,
                old_path,
                new_path,
                len(affected),
            )
        else:
            logger.info("Directory updated: id=%s", directory_id)
        return self._serialize(directory)

    def move_directory(
        self,
        db: Session,
        *,
        source_id: int,
        target_parent_id: Optional[int] = None,
        new_sort_order: Optional[int] = None,
    ) -> Dict[str, Any]:
        """把目录（连同整棵子树）移到新的父目录下，返回受影响的后代路径列表。"""
        self._validate_sort_order(new_sort_order)

        with self._transaction(db, "move"):
            source = self._get_or_fail(
                db, source_id, DirectoryErrorKind.SOURCE_NOT_FOUND, "源目录不存在", for_update=True
            )

            target_parent_path = ROOT_PATH
            if target_parent_id is not None:
                if target_parent_id == source_id:
                    raise DirectoryError(
                        DirectoryErrorKind.INVALID_TARGET, "目录不能移动到自己下面", {"source_id": source_id}
                    )
                target_parent = self._get_or_fail(
                    db,
                    target_parent_id,
                    DirectoryErrorKind.TARGET_PARENT_NOT_FOUND,
                    "目标父目录不存在",
                    for_update=True,
                )
                if would_create_cycle(source.path, target_parent.path):
                    raise DirectoryError(
                        DirectoryErrorKind.CIRCULAR_REFERENCE,
                        "不能将目录移动到其子目录下",
                        {"source_id": source_id, "target_parent_id": target_parent_id},
                    )
                target_parent_path = target_parent.path

            old_path = source.path
            new_path = build_path(target_parent_path, source.name)
            affected_paths = self._plan_cascade(
                db, source, new_path, conflict_message="目标位置已存在同名目录"
            )

            if new_sort_order is None:
                new_sort_order = self.crud.get_next_sort_order(db, target_parent_id)

            source.parent_id = target_parent_id
            source.path = new_path
            source.sort_order = new_sort_order
            self.crud.save(db, source, auto_commit=False)
            self.crud.update_paths(db, self._as_path_updates(affected_paths), auto_commit=False)

        logger.info(
            "Directory moved: id=%s %s -> %s, %s descendants rewritten",
            source_id,
            old_path,
            new_path,
            len(affected_paths),
        )
        return {"moved_directory": self._serialize(source), "affected_paths": affected_paths}

    def batch_move(self, db: Session, *, moves: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        """逐个执行移动；每个移动独立成事务，失败的条目不影响其它条目。"""
        successful: List[Dict[str, Any]] = []
        failed: List[Dict[str, Any]] = []
        for move in moves:
            source_id = move.get("source_id")
            try:
                successful.append(
                    self.move_directory(
                        db,
                        source_id=source_id,
                        target_parent_id=move.get("target_parent_id"),
                        new_sort_order=move.get("new_sort_order"),
                    )
                )
            except DirectoryError as exc:
                failed.append({"source_id": source_id, "error": exc.kind.value, "message": exc.message})
        return {"successful_moves": successful, "failed_moves": failed}

    def delete_directory(self, db: Session, *, directory_id: int) -> Dict[str, Any]:
        """删除空目录；存在直接子目录或直接文档时拒绝并返回检查结果。"""
        with self._transaction(db, "delete"):
            directory = self._get_or_fail(
                db, directory_id, DirectoryErrorKind.NOT_FOUND, "目录不存在", for_update=True
            )
            status = self.crud.check_delete_status(db, directory_id)
            if not status["can_delete"]:
                raise DirectoryError(DirectoryErrorKind.NOT_EMPTY, "目录不为空，无法删除", status)
            path = directory.path
            self.crud.hard_delete(db, directory, auto_commit=False)

        logger.info("Directory deleted: id=%s path=%s", directory_id, path)
        return {"id": directory_id, "path": path}

    def reorder_directories(
        self,
        db: Session,
        *,
        ordered_ids: Sequence[int],
        parent_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """按给定顺序重写同级目录的 ``sort_order``。"""
        ordered = list(ordered_ids or [])
        if not ordered:
            self._fail_validation("ordered_ids 必须是非空数组")
        if any(isinstance(i, bool) or not isinstance(i, int) or i < 1 for i in ordered):
            self._fail_validation("ordered_ids 中的每个元素都必须是正整数")
        if len(set(ordered)) != len(ordered):
            self._fail_validation("ordered_ids 中不能有重复的 ID")

        with self._transaction(db, "reorder"):
            if parent_id is not None and not self.crud.exists(db, parent_id):
                raise DirectoryError(
                    DirectoryErrorKind.PARENT_NOT_FOUND, "父目录不存在", {"parent_id": parent_id}
                )

            found = {item.id: item for item in self.crud.list_by_ids(db, ordered)}
            for directory_id in ordered:
                item = found.get(directory_id)
                if item is None:
                    raise DirectoryError(
                        DirectoryErrorKind.NOT_FOUND, f"目录 {directory_id} 不存在", {"id": directory_id}
                    )
                if item.parent_id != parent_id:
                    raise DirectoryError(
                        DirectoryErrorKind.INVALID_DIRECTORY_PARENT,
                        f"目录 {directory_id} 不属于指定的父目录",
                        {"id": directory_id, "parent_id": parent_id},
                    )

            self.crud.reorder_siblings(db, parent_id, ordered, auto_commit=False)

        logger.info("Directories reordered under parent=%s: %s", parent_id, ordered)
        return {"parent_id": parent_id, "ordered_ids": ordered}

    def copy_structure(
        self,
        db: Session,
        *,
        source_id: int,
        target_parent_id: Optional[int] = None,
        new_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """复制目录及其全部后代的结构（不含文档），整个复制在一个事务内完成。"""
        if new_name is not None:
            self._validate_name(new_name)

        with self._transaction(db, "copy"):
            source = self._get_or_fail(db, source_id, DirectoryErrorKind.SOURCE_NOT_FOUND, "源目录不存在")

            target_parent_path = ROOT_PATH
            if target_parent_id is not None:
                target_parent = self._get_or_fail(
                    db,
                    target_parent_id,
                    DirectoryErrorKind.TARGET_PARENT_NOT_FOUND,
                    "目标父目录不存在",
                    for_update=True,
                )
                target_parent_path = target_parent.path

            copy_name = new_name if new_name is not None else f"{source.name}{COPY_NAME_SUFFIX}"
            self._validate_name(copy_name)
            copy_path = build_path(target_parent_path, copy_name)
            if self.crud.path_exists(db, copy_path):
                raise DirectoryError(
                    DirectoryErrorKind.PATH_EXISTS, "目标位置已存在同名目录", {"path": copy_path}
                )

            # 先取后代再插入副本，避免复制到自身子树时把副本也算进去
            descendants = sorted(
                self.crud.list_descendants_by_path(db, source.path),
                key=lambda item: get_level(item.path),
            )
            planned = {d.id: replace_path_prefix(d.path, source.path, copy_path) for d in descendants}
            self._ensure_path_length(copy_path, *planned.values())

            root_copy = self.crud.create(
                db,
                {
                    "name": sanitize_name(copy_name),
                    "description": source.description,
                    "parent_id": target_parent_id,
                    "path": copy_path,
                    "sort_order": self.crud.get_next_sort_order(db, target_parent_id),
                },
                auto_commit=False,
            )
            id_map = {source.id: root_copy.id}
            copied_children: List[Directory] = []
            for descendant in descendants:
                child = self.crud.create(
                    db,
                    {
                        "name": descendant.name,
                        "description": descendant.description,
                        "parent_id": id_map[descendant.parent_id],
                        "path": planned[descendant.id],
                        "sort_order": descendant.sort_order,
                    },
                    auto_commit=False,
                )
                id_map[descendant.id] = child.id
                copied_children.append(child)

        logger.info(
            "Directory structure copied: %s -> %s (%s descendants)",
            source.path,
            copy_path,
            len(copied_children),
        )
        return {
            "copied_directory": self._serialize(root_copy),
            "copied_children": [self._serialize(child) for child in copied_children],
        }

    # ------------------------------------------------------------------
    # 辅助方法
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, db: Session, action: str) -> Iterator[None]:
        """用例级事务边界：正常结束时提交，业务失败或数据库异常时整体回滚。"""
        try:
            yield
            db.commit()
        except DirectoryError as exc:
            db.rollback()
            logger.info("Directory %s refused: %s", action, exc)
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Directory %s failed, transaction rolled back", action)
            raise DirectoryError(
                DirectoryErrorKind.STORAGE_FAILURE, "目录数据写入失败，操作已回滚"
            ) from exc
        except Exception:
            db.rollback()
            logger.exception("Directory %s failed unexpectedly, transaction rolled back", action)
            raise

    def _plan_cascade(
        self,
        db: Session,
        directory: Directory,
        new_path: str,
        *,
        conflict_message: str = "该路径下已存在同名目录",
    ) -> List[Dict[str, Any]]:
        """计算路径变化后每个后代的旧路径与新路径；路径未变时返回空列表。"""
        old_path = directory.path
        if new_path == old_path:
            return []
        if self.crud.path_exists(db, new_path, exclude_id=directory.id):
            raise DirectoryError(DirectoryErrorKind.PATH_EXISTS, conflict_message, {"path": new_path})

        descendants = self.crud.list_descendants_by_path(db, old_path, for_update=True)
        affected = [
            {
                "id": item.id,
                "old_path": item.path,
                "new_path": replace_path_prefix(item.path, old_path, new_path),
            }
            for item in descendants
        ]
        self._ensure_path_length(new_path, *(entry["new_path"] for entry in affected))
        return affected

    @staticmethod
    def _as_path_updates(affected: Sequence[Mapping[str, Any]]) -> List[PathUpdate]:
        return [PathUpdate(id=entry["id"], new_path=entry["new_path"]) for entry in affected]

    def _get_or_fail(
        self,
        db: Session,
        directory_id: int,
        kind: DirectoryErrorKind,
        msg: str,
        *,
        for_update: bool = False,
    ) -> Directory:
        directory = self.crud.get(db, directory_id, for_update=for_update)
        if directory is None:
            raise DirectoryError(kind, msg, {"id": directory_id})
        return directory

    @staticmethod
    def _fail_validation(msg: str, **details: Any) -> None:
        raise DirectoryError(DirectoryErrorKind.VALIDATION, msg, details)

    def _validate_name(self, name: Any) -> None:
        if not isinstance(name, str) or not name.strip():
            self._fail_validation("目录名称不能为空", field="name")
        if len(name.strip()) > DIRECTORY_NAME_MAX_LENGTH:
            self._fail_validation(f"目录名称长度必须在1-{DIRECTORY_NAME_MAX_LENGTH}个字符之间", field="name")
        if not validate_name(name):
            self._fail_validation("目录名称包含非法字符或为保留名称", field="name")

    def _validate_description(self, description: Any) -> None:
        if not validate_description(description):
            self._fail_validation(
                f"目录描述长度不能超过{DIRECTORY_DESCRIPTION_MAX_LENGTH}个字符", field="description"
            )

    def _validate_sort_order(self, sort_order: Any) -> None:
        if not validate_sort_order(sort_order):
            self._fail_validation("排序顺序必须是非负整数", field="sort_order")

    def _ensure_path_length(self, *paths: str) -> None:
        too_long = [path for path in paths if len(path) > DIRECTORY_PATH_MAX_LENGTH]
        if too_long:
            self._fail_validation(
                f"目录完整路径长度不能超过{DIRECTORY_PATH_MAX_LENGTH}个字符", field="path", paths=too_long[:5]
            )

    @staticmethod
    def _serialize(
        directory: Directory,
        *,
        document_count: Optional[int] = None,
        total_document_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": directory.id,
            "name": directory.name,
            "description": directory.description,
            "parent_id": directory.parent_id,
            "path": directory.path,
            "sort_order": directory.sort_order,
            "level": get_level(directory.path),
            "created_at": format_datetime(directory.created_at),
            "updated_at": format_datetime(directory.updated_at),
        }
        if document_count is not None:
            payload["document_count"] = document_count
        if total_document_count is not None:
            payload["total_document_count"] = total_document_count
        return payload


directory_service = DirectoryService()
