"""目录模型：以物化路径（materialized path）表达的目录树。

存储规则：
- path：以 '/' 开头，不以 '/' 结尾，由祖先名称依次拼接而成，例如 "/技术文档/API文档"；
- 根级目录 parent_id 为 NULL，其 path 为 "/" + 名称；合成根 "/" 本身不入库；
- path 全表唯一，同级目录名称的唯一性由此间接保证；
- sort_order 仅用于同级展示顺序，非负，不强制连续。
"""

from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.wiki.core.constants import (
    DIRECTORY_NAME_MAX_LENGTH,
    DIRECTORY_PATH_MAX_LENGTH,
)
from app.packages.wiki.models.base import Base, TimestampMixin


class Directory(TimestampMixin, Base):
    __tablename__ = "directories"
    __table_args__ = (
        CheckConstraint("sort_order >= 0", name="sort_order_non_negative"),
        CheckConstraint("parent_id IS NULL OR parent_id <> id", name="no_self_parent"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(DIRECTORY_NAME_MAX_LENGTH), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # 邻接表 + 物化路径：parent_id 用于同级查询，path 用于祖先/后代的前缀查询
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("directories.id"), nullable=True, index=True
    )
    path: Mapped[str] = mapped_column(
        String(DIRECTORY_PATH_MAX_LENGTH), nullable=False, unique=True, index=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False, index=True)

    def __repr__(self) -> str:
        return f"Directory(id={self.id!r}, path={self.path!r})"
