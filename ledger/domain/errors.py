"""
Ledger errors

Все доменные ошибки наследуют LedgerError (ValueError), как и
*ValidationError в use case'ах. PersistenceError - сбой хранилища.
"""


class LedgerError(ValueError):
    """Базовая ошибка ledger"""
    pass


class NotFoundError(LedgerError):
    """Счёт / карман / sub-pocket / движение не найдены"""
    pass


class InvalidAmountError(LedgerError):
    """Сумма нулевая, отрицательная или не число"""
    pass


class IntegrityViolationError(LedgerError):
    """Нарушение ссылочной целостности или уникальности"""
    pass


class InvalidStateError(LedgerError):
    """Операция недопустима в текущем состоянии движения"""
    pass


class PersistenceError(RuntimeError):
    """
    Ошибка хранилища

    После неё вызывающий код должен перечитать состояние из БД:
    сессия уже откатена и все загруженные объекты expired.
    """
    pass
