"""目录管理相关的路由定义。"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.packages.wiki.api.v1.schemas.directories import (
    DirectoryBatchMoveRequest,
    DirectoryBatchMoveResponse,
    DirectoryCopyRequest,
    DirectoryCopyResponse,
    DirectoryCreateRequest,
    DirectoryDeleteCheckResponse,
    DirectoryDeletionResponse,
    DirectoryListResponse,
    DirectoryMoveRequest,
    DirectoryMoveResponse,
    DirectoryPathInfoResponse,
    DirectoryReorderRequest,
    DirectoryReorderResponse,
    DirectoryResponse,
    DirectoryStatsResponse,
    DirectoryTreeResponse,
    DirectoryUpdateRequest,
)
from app.packages.wiki.core.constants import HTTP_STATUS_CREATED
from app.packages.wiki.core.dependencies import get_db
from app.packages.wiki.core.enums import DirectoryErrorKind
from app.packages.wiki.core.exceptions import DirectoryError
from app.packages.wiki.core.responses import create_response
from app.packages.wiki.services.directory_service import directory_service

router = APIRouter(prefix="/directories", tags=["directories"])


@router.get("", response_model=DirectoryListResponse)
def list_directories(
    parent_id: Optional[int] = Query(None, ge=1, description="只返回该父目录下的直接子目录"),
    root_only: bool = Query(False, description="只返回根级目录"),
    name: Optional[str] = Query(None, description="按名称模糊搜索"),
    path: Optional[str] = Query(None, description="按路径前缀过滤"),
    include_children: bool = Query(False, description="以树形结构返回"),
    include_documents: bool = Query(False, description="附带文档数量"),
    limit: Optional[int] = Query(None, ge=1, description="每页数量"),
    offset: int = Query(0, ge=0, description="偏移量"),
    sort_by: str = Query("sort_order", description="排序字段：name/sort_order/created_at/updated_at"),
    sort_order: str = Query("ASC", description="排序方向：ASC/DESC"),
    db: Session = Depends(get_db),
) -> DirectoryListResponse:
    """按条件查询目录列表。"""
    data = directory_service.list_directories(
        db,
        parent_id=parent_id,
        root_only=root_only,
        name=name,
        path_prefix=path,
        include_children=include_children,
        include_documents=include_documents,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return create_response("获取目录列表成功", data)


@router.get("/tree", response_model=DirectoryTreeResponse)
def get_directory_tree(db: Session = Depends(get_db)) -> DirectoryTreeResponse:
    """返回完整目录树。"""
    return create_response("获取目录树成功", directory_service.get_tree(db))


@router.get("/stats", response_model=DirectoryStatsResponse)
def get_directory_stats(db: Session = Depends(get_db)) -> DirectoryStatsResponse:
    return create_response("获取目录统计成功", directory_service.get_stats(db))


@router.post("", response_model=DirectoryResponse, status_code=HTTP_STATUS_CREATED)
def create_directory(
    payload: DirectoryCreateRequest,
    db: Session = Depends(get_db),
) -> DirectoryResponse:
    """创建目录。"""
    data = directory_service.create_directory(
        db,
        name=payload.name,
        parent_id=payload.parent_id,
        description=payload.description,
        sort_order=payload.sort_order,
    )
    return create_response("目录创建成功", data, HTTP_STATUS_CREATED)


@router.post("/move", response_model=DirectoryMoveResponse)
def move_directory(
    payload: DirectoryMoveRequest,
    db: Session = Depends(get_db),
) -> DirectoryMoveResponse:
    """移动目录及其整棵子树。"""
    data = directory_service.move_directory(
        db,
        source_id=payload.source_id,
        target_parent_id=payload.target_parent_id,
        new_sort_order=payload.new_sort_order,
    )
    return create_response("目录移动成功", data)


@router.post("/batch-move", response_model=DirectoryBatchMoveResponse)
def batch_move_directories(
    payload: DirectoryBatchMoveRequest,
    db: Session = Depends(get_db),
) -> DirectoryBatchMoveResponse:
    """批量移动目录；单个失败不影响其它条目。"""
    data = directory_service.batch_move(db, moves=[move.model_dump() for move in payload.moves])
    msg = (
        f"批量移动完成：成功 {len(data['successful_moves'])} 个，"
        f"失败 {len(data['failed_moves'])} 个"
    )
    return create_response(msg, data)


@router.post("/reorder", response_model=DirectoryReorderResponse)
def reorder_directories(
    payload: DirectoryReorderRequest,
    db: Session = Depends(get_db),
) -> DirectoryReorderResponse:
    """按给定顺序重排同级目录。"""
    data = directory_service.reorder_directories(
        db,
        parent_id=payload.parent_id,
        ordered_ids=payload.ordered_ids,
    )
    return create_response("目录排序更新成功", data)


@router.get("/{directory_id}", response_model=DirectoryResponse)
def get_directory(directory_id: int, db: Session = Depends(get_db)) -> DirectoryResponse:
    """获取目录详情。"""
    data = directory_service.get_directory(db, directory_id=directory_id)
    if data is None:
        raise DirectoryError(DirectoryErrorKind.NOT_FOUND, "目录不存在", {"id": directory_id})
    return create_response("获取目录详情成功", data)


@router.get("/{directory_id}/path-info", response_model=DirectoryPathInfoResponse)
def get_directory_path_info(directory_id: int, db: Session = Depends(get_db)) -> DirectoryPathInfoResponse:
    """获取目录的面包屑、祖先与直接子目录。"""
    return create_response("获取路径信息成功", directory_service.get_path_info(db, directory_id=directory_id))


@router.get("/{directory_id}/delete-check", response_model=DirectoryDeleteCheckResponse)
def check_directory_deletable(directory_id: int, db: Session = Depends(get_db)) -> DirectoryDeleteCheckResponse:
    """删除前检查。"""
    data = directory_service.check_delete_status(db, directory_id=directory_id)
    return create_response("删除检查完成", data)


@router.put("/{directory_id}", response_model=DirectoryResponse)
def update_directory(
    directory_id: int,
    payload: DirectoryUpdateRequest,
    db: Session = Depends(get_db),
) -> DirectoryResponse:
    """局部更新目录，只处理请求体中实际提交的字段。"""
    changes = payload.model_dump(exclude_unset=True)
    data = directory_service.update_directory(db, directory_id=directory_id, changes=changes)
    return create_response("目录更新成功", data)


@router.delete("/{directory_id}", response_model=DirectoryDeletionResponse)
def delete_directory(directory_id: int, db: Session = Depends(get_db)) -> DirectoryDeletionResponse:
    """删除空目录。"""
    data = directory_service.delete_directory(db, directory_id=directory_id)
    return create_response("目录删除成功", data)


@router.post("/{directory_id}/copy", response_model=DirectoryCopyResponse, status_code=HTTP_STATUS_CREATED)
def copy_directory_structure(
    directory_id: int,
    payload: DirectoryCopyRequest,
    db: Session = Depends(get_db),
) -> DirectoryCopyResponse:
    """复制目录结构（不含文档）。"""
    data = directory_service.copy_structure(
        db,
        source_id=directory_id,
        target_parent_id=payload.target_parent_id,
        new_name=payload.new_name,
    )
    return create_response("目录结构复制成功", data, HTTP_STATUS_CREATED)
