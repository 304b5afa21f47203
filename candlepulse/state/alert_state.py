"""
CandlePulse – Alert State
==========================
Cola acotada de alertas visibles para la capa de presentación.

REGLAS:
- Máximo `max_items` alertas (5): al superar el tope se descarta la
  más antigua.
- Cada alerta vive `ttl_seconds` (5 s); expire(now) elimina las vencidas.
- Los instantes se toman de un reloj monotónico inyectable.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Deque, List, Optional

from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.alert import Alert, AlertType

logger = get_logger("alert_state")


class AlertQueue:
    """FIFO acotado de alertas con expiración por tiempo."""

    def __init__(
        self,
        max_items: int = 5,
        ttl_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._alerts: Deque[Alert] = deque(maxlen=max_items)
        self._ttl = ttl_seconds
        self._clock = clock
        self.pushed_count = 0

    def push(self, message: str, alert_type: AlertType) -> Alert:
        alert = Alert(message=message, alert_type=alert_type, created_at=self._clock())
        self.add(alert)
        return alert

    def add(self, alert: Alert) -> None:
        self._alerts.append(alert)
        self.pushed_count += 1
        logger.info("Alerta [%s]: %s", alert.alert_type.value, alert.message)

    def dismiss(self) -> Optional[Alert]:
        """Descartar manualmente la alerta más antigua."""
        return self._alerts.popleft() if self._alerts else None

    def expire(self, now: Optional[float] = None) -> int:
        """Eliminar alertas con edad > ttl. Retorna cuántas se eliminaron."""
        now = self._clock() if now is None else now
        removed = 0
        while self._alerts and now - self._alerts[0].created_at > self._ttl:
            self._alerts.popleft()
            removed += 1
        return removed

    def active(self) -> List[Alert]:
        return list(self._alerts)

    def __len__(self) -> int:
        return len(self._alerts)
