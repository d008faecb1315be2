"""
Exceções do domínio.

Hierarquia:
- StockError
  - ValidationError     -> campo obrigatório ausente, valor negativo, chave única duplicada
  - NotFoundError       -> id inexistente em update/consulta
  - CorruptionDetected  -> blob armazenado ilegível ou com formato inválido
  - StorageFailure      -> o armazenamento chave/valor falhou (após as tentativas)
"""

from __future__ import annotations


class StockError(Exception):
    """Erro base do StockMaster."""


class ValidationError(StockError):
    pass


class NotFoundError(StockError):
    pass


class CorruptionDetected(StockError):
    def __init__(self, key: str, reason: str):
        super().__init__(f"Dados corrompidos em '{key}': {reason}")
        self.key = key
        self.reason = reason


class StorageFailure(StockError):
    pass
