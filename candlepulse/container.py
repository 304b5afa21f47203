"""
Dependency Injection Container.

Único lugar donde se crean las dependencias concretas y se cablea el
ciclo de mensajes:

    AggregationEngine ──dispatch──▸ ExecutionWorker.submit
    ExecutionWorker   ──reports──▸  MarketStreamUseCase.post (control)
    ITradeStreamProvider ─pump──▸   EventBus("trade") ──▸ MarketStreamUseCase.inbox
"""

from dataclasses import dataclass, field
from typing import Optional

from candlepulse.application.aggregation_engine import AggregationEngine
from candlepulse.application.market_stream_usecase import MarketStreamUseCase
from candlepulse.application.ports.market_data_provider import ICandleHistoryProvider
from candlepulse.application.ports.trade_executor import ITradeExecutor
from candlepulse.application.ports.trade_stream_provider import ITradeStreamProvider
from candlepulse.core.settings import Settings
from candlepulse.infrastructure.event_bus import EventBus
from candlepulse.infrastructure.execution_worker import ExecutionWorker, PaperTradeExecutor
from candlepulse.infrastructure.history_provider import InMemoryHistoryProvider
from candlepulse.infrastructure.trade_stream import InMemoryTradeStream, TradeStreamPump


@dataclass
class Container:
    """
    Contenedor de Inyección de Dependencias.

    Las instancias se crean perezosamente y se comparten (singleton por
    contenedor). history_provider, trade_executor y trade_stream pueden
    sustituirse antes del primer acceso.
    """

    settings: Settings = field(default_factory=Settings)
    history_provider: Optional[ICandleHistoryProvider] = None
    trade_executor: Optional[ITradeExecutor] = None
    trade_stream: Optional[ITradeStreamProvider] = None

    _event_bus: Optional[EventBus] = None
    _engine: Optional[AggregationEngine] = None
    _execution_worker: Optional[ExecutionWorker] = None
    _market_stream: Optional[MarketStreamUseCase] = None
    _trade_stream_pump: Optional[TradeStreamPump] = None

    def __post_init__(self) -> None:
        if self.history_provider is None:
            self.history_provider = InMemoryHistoryProvider()
        if self.trade_executor is None:
            self.trade_executor = PaperTradeExecutor()
        if self.trade_stream is None:
            self.trade_stream = InMemoryTradeStream(
                max_queue_size=self.settings.event_bus_max_queue_size,
            )

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            self._event_bus = EventBus(max_queue_size=self.settings.event_bus_max_queue_size)
        return self._event_bus

    @property
    def trade_stream_pump(self) -> TradeStreamPump:
        if self._trade_stream_pump is None:
            self._trade_stream_pump = TradeStreamPump(self.trade_stream, self.event_bus)
        return self._trade_stream_pump

    @property
    def execution_worker(self) -> ExecutionWorker:
        if self._execution_worker is None:
            self._execution_worker = ExecutionWorker(
                executor=self.trade_executor,
                report_sink=lambda report: self.market_stream.post(report),
                queue_size=self.settings.execution_queue_size,
            )
        return self._execution_worker

    @property
    def engine(self) -> AggregationEngine:
        if self._engine is None:
            self._engine = AggregationEngine(
                cfg=self.settings,
                dispatch=self.execution_worker.submit,
            )
        return self._engine

    @property
    def market_stream(self) -> MarketStreamUseCase:
        if self._market_stream is None:
            self._market_stream = MarketStreamUseCase(
                engine=self.engine,
                event_bus=self.event_bus,
                history=self.history_provider,
                inbox_size=self.settings.event_bus_max_queue_size,
                trade_stream=self.trade_stream_pump,
            )
        return self._market_stream


_container: Optional[Container] = None


def get_container() -> Container:
    global _container
    if _container is None:
        _container = Container()
    return _container
