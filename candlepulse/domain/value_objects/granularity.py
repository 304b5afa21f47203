"""
CandlePulse – Domain Value Object: Granularity / Market
=========================================================
Selectores fuertemente tipados de la serie activa.

- Granularity: ancho fijo del bucket (1 minuto, 3 minutos, 1 día).
  Cambiar de granularidad invalida la serie completa: no se puede
  derivar de sí misma y debe volver a pedirse al histórico.
- Market: par base/cotización (p.ej. BTC/USDT). El símbolo del stream
  de trades es la concatenación "BTCUSDT".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from candlepulse.domain.exceptions.domain_errors import ValidationError

_BUCKET_WIDTH_MS = {
    "1m": 60_000,
    "3m": 180_000,
    "1d": 86_400_000,
}

_LABELS = {
    "1m": "1Minute",
    "3m": "3Minute",
    "1d": "Day",
}


class Granularity(str, Enum):
    """Ancho de vela soportado."""

    MINUTE_1 = "1m"
    MINUTE_3 = "3m"
    DAY = "1d"

    @property
    def bucket_width_ms(self) -> int:
        return _BUCKET_WIDTH_MS[self.value]

    @property
    def label(self) -> str:
        return _LABELS[self.value]

    @classmethod
    def parse(cls, text: str) -> "Granularity":
        """Aceptar tanto el valor ("3m") como la etiqueta ("3Minute")."""
        key = text.strip()
        for granularity in cls:
            if key == granularity.value or key.lower() == granularity.label.lower():
                return granularity
        raise ValidationError(
            f"Granularidad desconocida: {text!r}", field="granularity", value=text,
        )


@dataclass(frozen=True, slots=True)
class Market:
    """Par de trading seleccionado."""

    base: str            # e.g. "BTC"
    quote: str = "USDT"

    @property
    def pair(self) -> str:
        """Símbolo del stream de trades (e.g. "BTCUSDT")."""
        return f"{self.base.upper()}{self.quote.upper()}"

    def to_dict(self) -> dict:
        return {"base": self.base, "quote": self.quote, "pair": self.pair}
