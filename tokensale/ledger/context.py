"""
CallContext — контекст вызова операции

Несёт адрес вызывающего и время блока в каждую операцию.
Вложенный вызов компонента получает новый контекст с caller = адрес
вызывающего компонента (forward).
"""

from pydantic import BaseModel, Field


class CallContext(BaseModel):
    """Контекст вызова: кто вызывает и когда."""

    caller: str = Field(..., min_length=1, description="Адрес вызывающего")
    timestamp: int = Field(..., ge=0, description="Время вызова (unix, секунды)")

    model_config = {"frozen": True}

    def forward(self, address: str) -> "CallContext":
        """Контекст для вложенного вызова от имени компонента address."""
        return CallContext(caller=address, timestamp=self.timestamp)
