"""
CandlePulse – Domain Exceptions
================================
Excepciones específicas del dominio.

Los cálculos numéricos del núcleo nunca lanzan excepciones con entradas
bien formadas: todos los fallos nacen en las fronteras con colaboradores
(histórico, ejecución, entrada del usuario) y se convierten en reportes,
alertas o respuestas HTTP.

JERARQUÍA:
    DomainError (base)
    ├── ValidationError
    ├── HistoryFetchError
    └── ExecutionError
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(DomainError):
    """Error de validación de datos de entrada (p.ej. granularidad desconocida)."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field
        self.value = value


class HistoryFetchError(DomainError):
    """El proveedor histórico no pudo entregar velas."""

    def __init__(self, message: str, market: Optional[str] = None):
        super().__init__(message, code="HISTORY_FETCH_FAILED")
        self.market = market


class ExecutionError(DomainError):
    """El colaborador de ejecución rechazó o no pudo colocar una orden."""

    def __init__(self, message: str, intent_id: Optional[str] = None):
        super().__init__(message, code="EXECUTION_FAILED")
        self.intent_id = intent_id
