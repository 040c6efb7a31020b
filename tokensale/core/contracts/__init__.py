"""
Contract Validation Module

Модуль для валидации экспортированного состояния компонентов по JSON Schema.
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    StateContractValidator,
    default_loader,
    validate_state,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "StateContractValidator",
    # Functions
    "default_loader",
    "validate_state",
]
