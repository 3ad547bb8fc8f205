"""
Account use cases - business logic for account operations
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from ledger.config import Settings, get_settings
from ledger.domain.errors import NotFoundError, IntegrityViolationError
from ledger.domain.account import ACCOUNT_TYPES, ACCOUNT_TYPE_INVESTMENT
from ledger.domain.pocket import POCKET_TYPE_NORMAL
from ledger.infrastructure.db.models import AccountModel, PocketModel
from ledger.infrastructure.store.repository import EntityStore
from ledger.utils.validation import is_valid_currency
from ledger.application.balances import recompute
from ledger.application.pockets import stage_pocket
from ledger.application.prices import PriceLookup

logger = logging.getLogger(__name__)


def _ensure_unique_account(store: EntityStore, name: str, currency: str, exclude_id: int | None = None) -> None:
    existing = store.get_all(AccountModel, name=name, currency=currency)
    if any(a.id != exclude_id for a in existing):
        raise IntegrityViolationError(
            f"Счёт «{name}» в валюте {currency} уже существует"
        )


def _validate_currency(currency: str) -> None:
    if not is_valid_currency(currency):
        raise IntegrityViolationError(
            f"Неверный код валюты: «{currency}». Используйте 3 заглавные буквы (например USD, EUR, COP)"
        )


class CreateAccountUseCase:
    """
    Use case: Создать счёт

    Для investment-счёта сразу создаются карманы "Invested Money" и
    "Shares" - из них синхронизируются invested_amount и share_count.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.store = EntityStore(db)
        self.settings = settings or get_settings()

    def execute(
        self,
        name: str,
        color: str,
        currency: str,
        account_type: str = "normal",
        stock_symbol: str | None = None
    ) -> int:
        """
        Создать счёт

        Args:
            name: Название
            color: Цветовая метка
            currency: Валюта (USD, EUR, COP)
            account_type: normal или investment
            stock_symbol: Тикер для investment (по умолчанию DEFAULT_STOCK_SYMBOL)

        Returns:
            account_id: ID созданного счёта
        """
        name = name.strip()
        if not name:
            raise IntegrityViolationError("Название счёта не может быть пустым")
        color = (color or "").strip()
        if not color:
            raise IntegrityViolationError("Цвет счёта не может быть пустым")
        if account_type not in ACCOUNT_TYPES:
            raise IntegrityViolationError(
                f"Неверный тип счёта: {account_type}. Используйте normal или investment"
            )
        _validate_currency(currency)
        _ensure_unique_account(self.store, name, currency)

        is_investment = account_type == ACCOUNT_TYPE_INVESTMENT
        siblings = self.store.get_all(AccountModel)
        account = self.store.insert(AccountModel(
            name=name,
            color=color,
            currency=currency,
            account_type=account_type,
            balance=Decimal("0"),
            stock_symbol=((stock_symbol or "").strip() or self.settings.DEFAULT_STOCK_SYMBOL).upper() if is_investment else None,
            invested_amount=Decimal("0") if is_investment else None,
            share_count=Decimal("0") if is_investment else None,
            sort_order=len(siblings),
        ))

        if is_investment:
            for pocket_name in (self.settings.INVESTED_POCKET_NAME, self.settings.SHARES_POCKET_NAME):
                stage_pocket(self.store, account, pocket_name, POCKET_TYPE_NORMAL)

        recompute(self.store, account.id, settings=self.settings)
        self.store.commit()
        logger.info("Account %s created (%s, %s)", account.id, account_type, currency)
        return account.id


class UpdateAccountUseCase:
    """Use case: Изменить название / цвет / валюту / тикер"""

    def __init__(self, db: Session, price_lookup: Optional[PriceLookup] = None):
        self.db = db
        self.store = EntityStore(db)
        self.price_lookup = price_lookup

    def execute(self, account_id: int, **changes) -> AccountModel:
        account = self.store.get_by_id(AccountModel, account_id)
        if not account:
            raise NotFoundError(f"Счёт #{account_id} не найден")

        updates = {}
        if "name" in changes:
            name = changes["name"].strip()
            if not name:
                raise IntegrityViolationError("Название счёта не может быть пустым")
            updates["name"] = name
        if "color" in changes:
            color = changes["color"].strip()
            if not color:
                raise IntegrityViolationError("Цвет счёта не может быть пустым")
            updates["color"] = color
        if "currency" in changes:
            _validate_currency(changes["currency"])
            updates["currency"] = changes["currency"]
        if "stock_symbol" in changes:
            if account.account_type != ACCOUNT_TYPE_INVESTMENT:
                raise IntegrityViolationError("Тикер можно указать только для инвестиционного счёта")
            symbol = (changes["stock_symbol"] or "").strip().upper()
            if not symbol:
                raise IntegrityViolationError("Тикер не может быть пустым")
            updates["stock_symbol"] = symbol

        if "name" in updates or "currency" in updates:
            _ensure_unique_account(
                self.store,
                updates.get("name", account.name),
                updates.get("currency", account.currency),
                exclude_id=account.id,
            )

        self.store.update(account, **updates)

        # Валюта карманов всегда совпадает с валютой счёта
        if "currency" in updates:
            for pocket in self.store.get_all(PocketModel, account_id=account.id):
                self.store.update(pocket, currency=updates["currency"])

        recompute(self.store, account.id, self.price_lookup)
        self.store.commit()
        return account


class DeleteAccountUseCase:
    """
    Use case: Удалить пустой счёт

    Счёт с карманами удаляется только каскадно (DeleteAccountCascadeUseCase).
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, account_id: int) -> None:
        account = self.store.get_by_id(AccountModel, account_id)
        if not account:
            raise NotFoundError(f"Счёт #{account_id} не найден")

        pockets = self.store.get_all(PocketModel, account_id=account_id)
        if pockets:
            raise IntegrityViolationError(
                f"Нельзя удалить счёт «{account.name}»: в нём {len(pockets)} карман(ов). "
                "Сначала удалите карманы или используйте каскадное удаление."
            )

        self.store.delete(account)
        self.store.commit()


class ReorderAccountsUseCase:
    """Use case: Задать порядок отображения счетов"""

    def __init__(self, db: Session):
        self.db = db
        self.store = EntityStore(db)

    def execute(self, account_ids: List[int]) -> None:
        if len(set(account_ids)) != len(account_ids):
            raise IntegrityViolationError("Список счетов содержит повторы")
        for position, account_id in enumerate(account_ids):
            account = self.store.get_by_id(AccountModel, account_id)
            if not account:
                raise NotFoundError(f"Счёт #{account_id} не найден")
            self.store.update(account, sort_order=position)
        self.store.commit()
