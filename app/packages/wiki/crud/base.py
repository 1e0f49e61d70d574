"""CRUD 基类：为各实体提供通用的数据访问方法。

写操作默认自行提交（``auto_commit=True``）；需要把多步写入合并到同一事务时，
调用方传入 ``auto_commit=False`` 并在最后统一 ``commit``。
"""

from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from app.packages.wiki.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """封装常见的查询、创建与保存逻辑，减少重复代码。"""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def query(self, db: Session):
        return db.query(self.model)

    def get(self, db: Session, id: Any, *, for_update: bool = False) -> Optional[ModelType]:
        """按主键读取；``for_update`` 时加行锁，保证后续写入基于本事务读到的数据。"""
        query = self.query(db).filter(self.model.id == id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_by_ids(self, db: Session, ids: Iterable[int]) -> List[ModelType]:
        """根据 ID 集合批量获取记录，返回顺序不保证。"""
        tokens = {int(i) for i in ids if i is not None}
        if not tokens:
            return []
        return self.query(db).filter(self.model.id.in_(tokens)).all()

    def exists(self, db: Session, id: Any) -> bool:
        return db.query(self.model.id).filter(self.model.id == id).first() is not None

    def create(self, db: Session, obj_in: Dict[str, Any], *, auto_commit: bool = True) -> ModelType:
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        if auto_commit:
            self._commit(db)
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def save(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> ModelType:
        db.add(db_obj)
        if auto_commit:
            self._commit(db)
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def hard_delete(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> None:
        """物理删除行。"""
        db.delete(db_obj)
        if auto_commit:
            self._commit(db)
        else:
            db.flush()

    @staticmethod
    def _commit(db: Session) -> None:
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
