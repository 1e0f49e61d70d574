"""文档表的最小映射。

文档的内容、版本与检索由文档子系统负责；目录模块只需要 ``directory_id``
来统计目录下的文档数量，因此这里仅声明计数所需的列。
"""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.wiki.models.base import Base, TimestampMixin


class Document(TimestampMixin, Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    directory_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("directories.id", ondelete="SET NULL"), nullable=True, index=True
    )
