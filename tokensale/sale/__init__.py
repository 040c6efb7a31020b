"""Sale — движок продажи по раундам, фазы конфигурации и раскладка покупок.

- SaleEngine: configure / open / buy / claim, V2 пауза
- SaleStateMachine: фазы UNCONFIGURED → FULLY_CONFIGURED → OPEN
- plan_fill: исполнение платежа по раундам с переходом курсора
"""

from .engine import ClaimResult, PurchaseResult, SaleConfig, SaleEngine
from .rounds import FillPlan, RoundFill, plan_fill
from .state_machine import SaleStateMachine, SaleTransitionResult

__all__ = [
    "SaleEngine",
    "SaleConfig",
    "PurchaseResult",
    "ClaimResult",
    "SaleStateMachine",
    "SaleTransitionResult",
    "FillPlan",
    "RoundFill",
    "plan_fill",
]
