"""
CandlePulse – Execution Worker (fire-and-forget)
=================================================
Puente entre el SignalGate (síncrono, dueño del estado) y el
colaborador de ejecución (asíncrono, red).

FLUJO:
  SignalGate.try_trade()
       │ submit(intent)            ← nunca bloquea
       ▼
  asyncio.Queue (maxsize=100)
       │
       ▼
  ExecutionWorker._run()           ← await executor.execute(intent)
       │
       └── report_sink(ExecutionReport)  → control del dueño del estado

CONTRAPRESIÓN:
- Cola llena → la orden se descarta y se registra en WARNING. El gate ya
  fijó last_trade_time: una orden descartada no libera el cooldown.

ERRORES:
- ExecutionError → reporte fallido con el mensaje del colaborador.
- Cualquier otra excepción → ERROR con traceback + reporte fallido.
  El worker sigue vivo.
"""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from candlepulse.application.ports.trade_executor import ITradeExecutor
from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.trade_intent import ExecutionReport, TradeIntent
from candlepulse.domain.exceptions.domain_errors import ExecutionError

logger = get_logger("execution_worker")

ReportSink = Callable[[ExecutionReport], None]


class ExecutionWorker:
    """Consume TradeIntents de una cola acotada y reporta el resultado."""

    def __init__(
        self,
        executor: ITradeExecutor,
        report_sink: ReportSink,
        queue_size: int = 100,
    ) -> None:
        self._executor = executor
        self._report_sink = report_sink
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._executed_count = 0
        self._failed_count = 0

    def submit(self, intent: TradeIntent) -> bool:
        """Encolar sin bloquear. False si la cola está llena."""
        try:
            self._queue.put_nowait(intent)
        except asyncio.QueueFull:
            logger.warning(
                "Cola de ejecución llena – orden %s %s descartada",
                intent.id, intent.direction.value,
            )
            return False
        return True

    async def start(self) -> None:
        """Lanzar el loop de ejecución como task."""
        self._running = True
        self._task = asyncio.create_task(self._run(), name="execution_worker")
        logger.info("ExecutionWorker iniciado (cola=%d)", self._queue.maxsize)

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(
            "ExecutionWorker detenido. Ejecutadas: %d, fallidas: %d",
            self._executed_count, self._failed_count,
        )

    async def drain(self) -> None:
        """Esperar a que todas las órdenes encoladas tengan reporte."""
        await self._queue.join()

    async def _run(self) -> None:
        while self._running:
            try:
                try:
                    intent: TradeIntent = await asyncio.wait_for(self._queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
                try:
                    await self.execute_one(intent)
                finally:
                    self._queue.task_done()
            except asyncio.CancelledError:
                logger.info("ExecutionWorker cancelado")
                break

    async def execute_one(self, intent: TradeIntent) -> ExecutionReport:
        """Ejecutar una orden y entregar su reporte al sink."""
        try:
            await self._executor.execute(intent)
            report = ExecutionReport(intent=intent, success=True)
            self._executed_count += 1
        except ExecutionError as e:
            logger.warning("Orden %s rechazada: %s", intent.id, e.message)
            report = ExecutionReport(intent=intent, success=False, error=e.message)
            self._failed_count += 1
        except Exception as e:
            logger.error("Error ejecutando orden %s: %s", intent.id, e, exc_info=True)
            report = ExecutionReport(intent=intent, success=False, error=str(e))
            self._failed_count += 1

        self._report_sink(report)
        return report

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def get_stats(self) -> dict:
        return {
            "pending": self.pending,
            "executed": self._executed_count,
            "failed": self._failed_count,
            "running": self._running,
        }


class PaperTradeExecutor(ITradeExecutor):
    """
    Ejecutor en memoria: registra las órdenes sin tocar un broker.

    Rechaza órdenes con precio o cantidad no positivos (p.ej. un precio
    que llegó malformado y se parseó como 0.0).
    """

    def __init__(self) -> None:
        self.executed: List[TradeIntent] = []

    async def execute(self, intent: TradeIntent) -> None:
        if intent.price <= 0 or intent.amount <= 0:
            raise ExecutionError(
                f"Orden inválida: precio={intent.price} cantidad={intent.amount}",
                intent_id=intent.id,
            )
        self.executed.append(intent)
        logger.info(
            "Paper %s %s %.6f @ %.5f (id=%s)",
            intent.direction.value, intent.symbol, intent.amount, intent.price, intent.id,
        )
