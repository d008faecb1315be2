"""
Resultado explícito de leitura de uma coleção.

Permite distinguir "coleção vazia" de "coleção ilegível" sem lançar exceção.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ReadResult:
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "ReadResult":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> "ReadResult":
        return cls(error=reason)

    def unwrap_or(self, default: Any) -> Any:
        return self.value if self.ok else default
