"""
CandlePulse – Domain Entity: Alert
====================================
Notificación corta para el colaborador de presentación.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AlertType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    INFO = "INFO"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class Alert:
    """Mensaje de alerta con instante monotónico de creación."""

    message: str
    alert_type: AlertType
    created_at: float    # time.monotonic() al crearse

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "alert_type": self.alert_type.value,
            "created_at": self.created_at,
        }
