"""
tokensale — фазированная продажа токена с vesting-выдачей.

Пакеты:
- core:      доменные модели, единицы, ошибки, JSON Schema контракты
- ledger:    сериализованный ledger, контекст вызова, атомарные транзакции
- upgrade:   версионирование схемы состояния
- asset:     capped-токен продажи и платёжный актив
- vesting:   расписание освобождения по эпохам
- registry:  реестр идентичностей держателей
- sale:      движок продажи
- allocator: казначейские категории
"""

__version__ = "1.0.0"
