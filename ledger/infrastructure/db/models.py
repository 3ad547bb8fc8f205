"""
SQLAlchemy ORM models: accounts, pockets, sub-pockets, expense groups, movements
"""
from decimal import Decimal
from datetime import date as date_type, datetime
from sqlalchemy import String, DateTime, Integer, Text, TIMESTAMP, Date, func, Boolean, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column

from ledger.infrastructure.db.session import Base


class AccountModel(Base):
    """
    Счёт верхнего уровня (normal / investment)

    balance - производное значение, пересчитывается balances.recompute().
    invested_amount и share_count накапливаются движениями (только investment).
    """
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    account_type: Mapped[str] = mapped_column(String(16), nullable=False, server_default="normal")  # normal, investment

    balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=6),
        nullable=False,
        server_default="0"
    )

    # Investment only
    stock_symbol: Mapped[str | None] = mapped_column(String(16), nullable=True)
    invested_amount: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=6), nullable=True)
    share_count: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=6), nullable=True)

    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class PocketModel(Base):
    """
    Карман внутри счёта (normal / fixed)

    Для fixed-кармана balance = сумма балансов его sub-pockets.
    Для normal-кармана balance накапливается проведёнными движениями.
    """
    __tablename__ = "pockets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    pocket_type: Mapped[str] = mapped_column(String(16), nullable=False, server_default="normal")  # normal, fixed
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=6),
        nullable=False,
        server_default="0"
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class SubPocketModel(Base):
    """
    Регулярное обязательство внутри fixed-кармана

    balance может быть отрицательным (долг) или больше target_value (переплата).
    """
    __tablename__ = "sub_pockets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    pocket_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    target_value: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=6), nullable=False)
    periodicity_months: Mapped[int] = mapped_column(Integer, nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=6),
        nullable=False,
        server_default="0"
    )
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    # Группа для отображения (без FK), None - вне групп
    group_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class FixedExpenseGroupModel(Base):
    """
    Группа sub-pockets (обязательств) - только для группировки и
    массового включения / выключения, на балансы не влияет
    """
    __tablename__ = "fixed_expense_groups"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class MovementModel(Base):
    """
    Движение - единственный источник изменений балансов

    account_id / pocket_id / sub_pocket_id - обычные колонки без FK:
    осиротевшие движения переживают удаление родителя.
    """
    __tablename__ = "movements"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    movement_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    pocket_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    sub_pocket_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=6), nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    displayed_date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)

    is_pending: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")

    # Orphan state + snapshot of parent names for later restoration
    is_orphaned: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false", index=True)
    orphan_reason: Mapped[str | None] = mapped_column(String(16), nullable=True)  # account, pocket
    orphaned_account_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    orphaned_account_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    orphaned_pocket_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    orphaned_sub_pocket_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_movements_account_created", "account_id", "created_at"),
    )
