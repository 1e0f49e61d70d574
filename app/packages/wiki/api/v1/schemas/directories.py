"""目录管理相关的请求与响应模型。"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field, model_validator

from app.packages.wiki.api.v1.schemas.common import ResponseEnvelope
from app.packages.wiki.core.constants import (
    DIRECTORY_DESCRIPTION_MAX_LENGTH,
    DIRECTORY_NAME_MAX_LENGTH,
)


# ---------------------------------------------------------------------------
# 请求体
# ---------------------------------------------------------------------------


class DirectoryCreateRequest(BaseModel):
    """新建目录的请求体。"""

    name: str = Field(..., min_length=1, max_length=DIRECTORY_NAME_MAX_LENGTH, description="目录名称")
    description: Optional[str] = Field(
        default=None, max_length=DIRECTORY_DESCRIPTION_MAX_LENGTH, description="目录描述"
    )
    parent_id: Optional[int] = Field(default=None, ge=1, description="父目录 ID，缺省为根级")
    sort_order: Optional[int] = Field(default=None, ge=0, description="排序值，缺省追加到同级末尾")

    @model_validator(mode="after")
    def _normalize_name(self) -> "DirectoryCreateRequest":
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("目录名称不能为空")
        return self


class DirectoryUpdateRequest(BaseModel):
    """局部更新目录的请求体：未提交的字段保持不变，``parent_id`` 显式为 null 表示移到根级。"""

    name: Optional[str] = Field(default=None, min_length=1, max_length=DIRECTORY_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DIRECTORY_DESCRIPTION_MAX_LENGTH)
    parent_id: Optional[int] = Field(default=None, ge=1)
    sort_order: Optional[int] = Field(default=None, ge=0)


class DirectoryMoveRequest(BaseModel):
    """移动目录的请求体。"""

    source_id: int = Field(..., ge=1, description="要移动的目录 ID")
    target_parent_id: Optional[int] = Field(default=None, ge=1, description="目标父目录 ID，缺省为根级")
    new_sort_order: Optional[int] = Field(default=None, ge=0, description="移动后的排序值")


class DirectoryBatchMoveRequest(BaseModel):
    moves: List[DirectoryMoveRequest] = Field(..., min_length=1)


class DirectoryReorderRequest(BaseModel):
    """同级目录重新排序的请求体。"""

    parent_id: Optional[int] = Field(default=None, ge=1, description="父目录 ID，缺省为根级")
    ordered_ids: List[int] = Field(..., min_length=1, description="按新顺序排列的目录 ID")

    @model_validator(mode="after")
    def _check_ids(self) -> "DirectoryReorderRequest":
        if any(item < 1 for item in self.ordered_ids):
            raise ValueError("ordered_ids 中的每个元素都必须是正整数")
        if len(set(self.ordered_ids)) != len(self.ordered_ids):
            raise ValueError("ordered_ids 中不能有重复的 ID")
        return self


class DirectoryCopyRequest(BaseModel):
    """复制目录结构的请求体。"""

    target_parent_id: Optional[int] = Field(default=None, ge=1, description="目标父目录 ID，缺省为根级")
    new_name: Optional[str] = Field(
        default=None, min_length=1, max_length=DIRECTORY_NAME_MAX_LENGTH, description="副本名称"
    )


# ---------------------------------------------------------------------------
# 响应体
# ---------------------------------------------------------------------------


class DirectoryItem(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    path: str
    sort_order: int
    level: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    document_count: Optional[int] = None
    total_document_count: Optional[int] = None


class DirectoryTreeNode(DirectoryItem):
    children: List["DirectoryTreeNode"]


DirectoryTreeNode.model_rebuild()


class DirectoryListData(BaseModel):
    directories: List[Union[DirectoryTreeNode, DirectoryItem]]
    total: int


class BreadcrumbItem(BaseModel):
    id: Optional[int] = None
    name: str
    path: str
    level: int


class DirectoryPathInfo(BaseModel):
    directory: DirectoryItem
    ancestors: List[DirectoryItem]
    children: List[DirectoryItem]
    breadcrumb: List[BreadcrumbItem]


class DirectoryDeleteCheck(BaseModel):
    can_delete: bool
    has_children: bool
    has_documents: bool
    children_count: int
    document_count: int
    total_document_count: int
    warnings: List[str]


class DirectoryStats(BaseModel):
    total_directories: int
    root_directories: int
    max_depth: int
    total_documents: int


class AffectedPath(BaseModel):
    id: int
    old_path: str
    new_path: str


class DirectoryMoveResult(BaseModel):
    moved_directory: DirectoryItem
    affected_paths: List[AffectedPath]


class FailedMove(BaseModel):
    source_id: Optional[int] = None
    error: str
    message: str


class DirectoryBatchMoveResult(BaseModel):
    successful_moves: List[DirectoryMoveResult]
    failed_moves: List[FailedMove]


class DirectoryReorderResult(BaseModel):
    parent_id: Optional[int] = None
    ordered_ids: List[int]


class DirectoryCopyResult(BaseModel):
    copied_directory: DirectoryItem
    copied_children: List[DirectoryItem]


class DirectoryDeletionResult(BaseModel):
    id: int
    path: str


DirectoryResponse = ResponseEnvelope[DirectoryItem]
DirectoryListResponse = ResponseEnvelope[DirectoryListData]
DirectoryTreeResponse = ResponseEnvelope[List[DirectoryTreeNode]]
DirectoryPathInfoResponse = ResponseEnvelope[DirectoryPathInfo]
DirectoryDeleteCheckResponse = ResponseEnvelope[DirectoryDeleteCheck]
DirectoryStatsResponse = ResponseEnvelope[DirectoryStats]
DirectoryMoveResponse = ResponseEnvelope[DirectoryMoveResult]
DirectoryBatchMoveResponse = ResponseEnvelope[DirectoryBatchMoveResult]
DirectoryReorderResponse = ResponseEnvelope[DirectoryReorderResult]
DirectoryCopyResponse = ResponseEnvelope[DirectoryCopyResult]
DirectoryDeletionResponse = ResponseEnvelope[DirectoryDeletionResult]
