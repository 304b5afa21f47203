"""
CandlePulse – Time Bucket
==========================
Función pura: timestamp de un trade + granularidad → inicio del bucket.

    bucket_start = timestamp − (timestamp mod ancho)

Propiedades:
  - total, sin modos de fallo
  - monótona: t1 < t2 ⇒ bucket_start(t1) ≤ bucket_start(t2)
  - idempotente: bucket_start(bucket_start(t)) == bucket_start(t)
"""

from __future__ import annotations

from candlepulse.domain.value_objects.granularity import Granularity


def bucket_width(granularity: Granularity) -> int:
    """Ancho del bucket en milisegundos."""
    return granularity.bucket_width_ms


def bucket_start(timestamp_ms: int, granularity: Granularity) -> int:
    """Alinear un timestamp (ms) al inicio de su bucket."""
    timestamp_ms = int(timestamp_ms)
    return timestamp_ms - (timestamp_ms % granularity.bucket_width_ms)
