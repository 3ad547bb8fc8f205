"""
Entity Store - CRUD для accounts / pockets / sub_pockets / movements

Тонкая обёртка над SQLAlchemy session. Все ошибки SQLAlchemy
превращаются в PersistenceError.
"""
import logging
from contextlib import contextmanager
from typing import Any, List, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger.domain.errors import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityStore:
    """
    Repository для всех сущностей ledger

    Контракт commit(): изменения применяются локально (flush),
    затем фиксируются. Если фиксация не удалась - откат, все
    загруженные объекты помечаются expired (следующее чтение
    возьмёт авторитетное состояние из БД) и поднимается PersistenceError.
    Так же ведут себя insert / update / delete / flush и чтения: незафиксированный
    unit of work отбрасывается целиком, сессия остаётся рабочей.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("Store %s failed, discarding local state", action)
            # После неудачного flush сессия непригодна до rollback
            self.db.rollback()
            self.db.expire_all()
            raise PersistenceError(f"Ошибка хранилища при операции {action}: {exc}") from exc

    def get_all(self, model: Type[T], *criteria, order_by=None, **filters) -> List[T]:
        """
        Получить все строки модели по фильтрам

        Args:
            model: ORM-класс
            *criteria: SQLAlchemy-выражения (model.col.in_(...))
            order_by: колонка или кортеж колонок сортировки (по умолчанию - id)
            **filters: равенства колонок (account_id=1)

        Example:
            >>> store.get_all(PocketModel, account_id=1)
        """
        with self._guard("get_all"):
            query = self.db.query(model).filter_by(**filters)
            if criteria:
                query = query.filter(*criteria)
            order = order_by if order_by is not None else model.id
            if not isinstance(order, (list, tuple)):
                order = (order,)
            return query.order_by(*order).all()

    def get_by_id(self, model: Type[T], entity_id: Any, for_update: bool = False) -> Optional[T]:
        """
        Получить строку по первичному ключу

        for_update=True берёт строку с SELECT ... FOR UPDATE: чтение
        баланса атомарно относительно последующей записи.
        """
        if entity_id is None:
            return None
        with self._guard("get_by_id"):
            query = self.db.query(model).filter(model.id == entity_id)
            if for_update:
                query = query.with_for_update()
            return query.first()

    def insert(self, entity: T) -> T:
        with self._guard("insert"):
            self.db.add(entity)
            self.db.flush()  # Получить ID без commit
        return entity

    def update(self, entity: T, **fields) -> T:
        with self._guard("update"):
            for name, value in fields.items():
                setattr(entity, name, value)
            self.db.flush()
        return entity

    def delete(self, entity: Any) -> None:
        with self._guard("delete"):
            self.db.delete(entity)
            self.db.flush()

    def flush(self) -> None:
        with self._guard("flush"):
            self.db.flush()

    def commit(self) -> None:
        """Зафиксировать unit of work (см. контракт класса)"""
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            logger.exception("Commit failed, discarding local state")
            self.db.rollback()
            self.db.expire_all()
            raise PersistenceError(f"Не удалось сохранить изменения: {exc}") from exc
