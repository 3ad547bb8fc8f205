"""
Пересчитать балансы всех счетов вручную (maintenance / диагностика)

Usage:
    DATABASE_URL=postgresql://... python recompute_balances.py
    python recompute_balances.py --no-prices   # без запроса цен акций
"""
import logging
import sys

from ledger.config import get_settings
from ledger.infrastructure.db.session import session_scope, check_db_connection
from ledger.infrastructure.store.repository import EntityStore
from ledger.application.balances import recompute_all
from ledger.application.prices import build_price_lookup
from ledger.utils.money import format_money

logger = logging.getLogger(__name__)


def main(argv) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if settings.DATABASE_URL.startswith("postgresql"):
        check_db_connection(settings)

    price_lookup = None if "--no-prices" in argv else build_price_lookup(settings)
    try:
        with session_scope() as db:
            print("Пересчитываем балансы...")
            store = EntityStore(db)
            accounts = recompute_all(store, price_lookup, settings)
            store.commit()

            print(f"✓ Пересчитано счетов: {len(accounts)}")
            for account in accounts:
                print(f"  - {account.name} ({account.account_type}): {format_money(account.balance, account.currency)}")
    except Exception as e:
        print(f"✗ ОШИБКА: {e}")
        logger.exception("Recompute failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
