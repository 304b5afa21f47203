"""Domain exceptions."""
from candlepulse.domain.exceptions.domain_errors import (
    DomainError,
    ExecutionError,
    HistoryFetchError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "ValidationError",
    "HistoryFetchError",
    "ExecutionError",
]
