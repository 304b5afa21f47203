"""
CandlePulse – Settings (Pydantic BaseSettings)
==============================================
Configuración centralizada cargada desde variables de entorno / .env.
Se usa pydantic-settings para validación estricta al arranque.

Los umbrales de scoring y momentum son heurísticas fijas: se exponen
aquí para poder ajustarlos sin tocar los algoritmos.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ─── Mercado ────────────────────────────────────────────────────────
    base_asset: str = Field(default="BTC", description="Activo base del mercado seleccionado")
    quote_asset: str = Field(default="USDT", description="Activo de cotización")
    default_granularity: str = Field(
        default="1d", description="Granularidad inicial de velas (1m, 3m, 1d)",
    )

    # ─── Serie de velas ─────────────────────────────────────────────────
    max_candles: int = Field(
        default=1000, description="Máximo de velas retenidas al consumir la serie",
    )

    # ─── Pattern Scorer ─────────────────────────────────────────────────
    pattern_window: int = Field(
        default=20, description="Velas mínimas antes de puntuar patrones",
    )
    score_publish_threshold: float = Field(
        default=70.0, description="Puntaje total mínimo para publicar una señal",
    )

    # ─── Signal Gate ────────────────────────────────────────────────────
    score_alert_threshold: float = Field(
        default=85.0, description="Puntaje total mínimo para alertar en la última vela",
    )
    trade_cooldown_seconds: float = Field(
        default=60.0, description="Tiempo mínimo entre dos órdenes despachadas",
    )
    trade_amount: float = Field(default=0.001, description="Cantidad fija por orden")
    strong_momentum_strength: float = Field(
        default=0.7, description="Fuerza a partir de la cual el momentum es 'fuerte'",
    )
    auto_trading_enabled: bool = Field(
        default=False, description="Trading automático activo al arrancar",
    )
    scored_signals_enabled: bool = Field(
        default=True, description="Cálculo de señales puntuadas activo al arrancar",
    )

    # ─── Momentum (period, umbral momentum %, umbral ratio volumen) ────
    momentum_1m_period: int = Field(default=10)
    momentum_1m_threshold: float = Field(default=0.5)
    momentum_1m_volume_threshold: float = Field(default=1.5)

    momentum_3m_period: int = Field(default=14)
    momentum_3m_threshold: float = Field(default=1.0)
    momentum_3m_volume_threshold: float = Field(default=1.3)

    momentum_day_period: int = Field(default=20)
    momentum_day_threshold: float = Field(default=3.0)
    momentum_day_volume_threshold: float = Field(default=1.2)

    # ─── Alertas ────────────────────────────────────────────────────────
    alert_max_items: int = Field(default=5, description="Alertas visibles como máximo")
    alert_ttl_seconds: float = Field(default=5.0, description="Vida de una alerta")

    # ─── Colas ──────────────────────────────────────────────────────────
    execution_queue_size: int = Field(
        default=100, description="Capacidad de la cola hacia el worker de ejecución",
    )
    event_bus_max_queue_size: int = Field(
        default=10_000,
        description="Tamaño máximo de cola del Event Bus para contrapresión",
    )

    # ─── Server ─────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8888)
    debug: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton global – se importa donde se necesite
settings = Settings()
