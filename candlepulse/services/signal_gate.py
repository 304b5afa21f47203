"""
CandlePulse – Signal Gate
==========================
Decide qué eventos de la última vela se convierten en alertas y cuáles
en órdenes entregadas al colaborador de ejecución.

═══════════════════════════════════════════════════════════════
                       REGLAS
═══════════════════════════════════════════════════════════════

ALERTAS (evaluate):
  - BUY  si el puntaje BUY en el último timestamp ≥ alert_threshold (85)
  - SELL si el puntaje SELL en el último timestamp ≥ alert_threshold

ÓRDENES (try_trade):
  - Solo con auto_trading_enabled.
  - Cooldown GLOBAL (no por dirección): se despacha si nunca hubo orden
    o si pasaron más de cooldown_seconds (60 s) desde la última.
  - last_trade_time se fija al despachar, ANTES de conocer el resultado.
    Un fallo de ejecución no lo revierte.
  - El despacho es fire-and-forget: dispatch() nunca bloquea; el
    resultado vuelve como ExecutionReport al dueño del estado.

RELOJ:
  - Monotónico e inyectable (time.monotonic por defecto) para poder
    testear el cooldown sin esperar.
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional

from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.alert import Alert, AlertType
from candlepulse.domain.entities.signal_scoring import SignalScoring
from candlepulse.domain.entities.trade_intent import (
    TradeDirection,
    TradeIndicators,
    TradeIntent,
)

logger = get_logger("signal_gate")

Dispatch = Callable[[TradeIntent], None]


class SignalGate:
    """Umbral de alertas + cooldown + flag de trading automático."""

    def __init__(
        self,
        dispatch: Dispatch,
        symbol: str = "BTCUSDT",
        alert_threshold: float = 85.0,
        cooldown_seconds: float = 60.0,
        trade_amount: float = 0.001,
        auto_trading_enabled: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._dispatch = dispatch
        self.symbol = symbol
        self.alert_threshold = alert_threshold
        self.cooldown_seconds = cooldown_seconds
        self.trade_amount = trade_amount
        self.auto_trading_enabled = auto_trading_enabled
        self.last_trade_time: Optional[float] = None
        self._clock = clock

    # ════════════════════════════════════════════════════════════════
    #  ALERTAS
    # ════════════════════════════════════════════════════════════════

    def evaluate(
        self,
        latest_ts: int,
        buy_score: Optional[SignalScoring],
        sell_score: Optional[SignalScoring],
    ) -> List[Alert]:
        """Alertas por puntaje en el último timestamp."""
        alerts: List[Alert] = []
        now = self._clock()

        if buy_score is not None and buy_score.total_score >= self.alert_threshold:
            alerts.append(Alert(
                message=f"Señal de compra muy fuerte. Puntaje: {buy_score.total_score:.0f}/100",
                alert_type=AlertType.BUY,
                created_at=now,
            ))
        if sell_score is not None and sell_score.total_score >= self.alert_threshold:
            alerts.append(Alert(
                message=f"Señal de venta muy fuerte. Puntaje: {sell_score.total_score:.0f}/100",
                alert_type=AlertType.SELL,
                created_at=now,
            ))

        if alerts:
            logger.info("Gate: %d alerta(s) en ts=%d", len(alerts), latest_ts)
        return alerts

    # ════════════════════════════════════════════════════════════════
    #  ÓRDENES
    # ════════════════════════════════════════════════════════════════

    def cooldown_elapsed(self, now: Optional[float] = None) -> bool:
        if self.last_trade_time is None:
            return True
        now = self._clock() if now is None else now
        return now - self.last_trade_time > self.cooldown_seconds

    def try_trade(
        self,
        direction: TradeDirection,
        price: float,
        strength: float,
        timestamp: int,
        indicators: Optional[TradeIndicators] = None,
    ) -> Optional[TradeIntent]:
        """
        Despachar una orden si el trading automático está activo y el
        cooldown global ha vencido. Retorna la orden despachada o None.
        """
        if not self.auto_trading_enabled:
            return None

        now = self._clock()
        if not self.cooldown_elapsed(now):
            logger.debug(
                "Gate: %s descartada por cooldown (%.1fs desde la última orden)",
                direction.value, now - self.last_trade_time,
            )
            return None

        intent = self._build_intent(direction, price, strength, timestamp, indicators)
        self.last_trade_time = now
        logger.info(
            "Gate: orden %s %s %.6f @ %.5f (fuerza=%.2f, id=%s)",
            intent.direction.value, intent.symbol, intent.amount,
            intent.price, intent.strength, intent.id,
        )
        self._dispatch(intent)
        return intent

    def place_order(
        self,
        direction: TradeDirection,
        price: float,
        timestamp: int,
        indicators: Optional[TradeIndicators] = None,
    ) -> TradeIntent:
        """Orden manual del usuario: no pasa por el flag de auto-trading ni por el cooldown."""
        intent = self._build_intent(direction, price, 1.0, timestamp, indicators)
        logger.info(
            "Orden manual %s %s %.6f @ %.5f (id=%s)",
            intent.direction.value, intent.symbol, intent.amount, intent.price, intent.id,
        )
        self._dispatch(intent)
        return intent

    def _build_intent(
        self,
        direction: TradeDirection,
        price: float,
        strength: float,
        timestamp: int,
        indicators: Optional[TradeIndicators],
    ) -> TradeIntent:
        return TradeIntent(
            symbol=self.symbol,
            direction=direction,
            price=price,
            amount=self.trade_amount,
            strength=strength,
            timestamp=timestamp,
            indicators=indicators or TradeIndicators(),
        )

    def toggle_auto_trading(self) -> bool:
        self.auto_trading_enabled = not self.auto_trading_enabled
        logger.info(
            "Trading automático %s",
            "activado" if self.auto_trading_enabled else "desactivado",
        )
        return self.auto_trading_enabled
