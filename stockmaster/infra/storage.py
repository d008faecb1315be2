"""
Armazenamento chave/valor persistente sobre SQLite.

Cada coleção do sistema é gravada como um único texto (JSON) sob uma chave
fixa. Esta é a única fronteira com o disco:

- erros do SQLite viram ``StorageFailure``;
- gravações e remoções seguem uma ``RetryPolicy`` configurável;
- ``transaction()`` agrupa várias operações numa única transação SQLite
  (reentrante; callbacks ``call_after_commit`` rodam só após o commit);
- cada gravação recebe uma ``versao`` (ns), permitindo detectar alterações
  feitas por outro processo.
"""

from __future__ import annotations

import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Type

from stockmaster.config import DEFAULTS
from stockmaster.domain.errors import StorageFailure
from stockmaster.infra.db import connect
from stockmaster.infra.logger import log_database_operation, log_system_event


@dataclass(frozen=True)
class RetryPolicy:
    """Política de novas tentativas: ``delay * backoff ** (tentativa - 1)``."""
    max_attempts: int = DEFAULTS.retry_max_attempts
    delay_s: float = DEFAULTS.retry_delay_s
    backoff: float = DEFAULTS.retry_backoff
    retry_on: Tuple[Type[BaseException], ...] = (sqlite3.OperationalError,)

    def delays(self) -> List[float]:
        """Esperas entre as tentativas (``max_attempts - 1`` valores)."""
        return [self.delay_s * (self.backoff ** i) for i in range(max(self.max_attempts, 1) - 1)]

    def run(self, func: Callable[[], object], descricao: str = "operação", sleep: Callable[[float], None] = time.sleep):
        esperas = self.delays()
        tentativa = 1
        while True:
            try:
                return func()
            except self.retry_on as e:
                if tentativa > len(esperas):
                    raise
                log_system_event(
                    "storage_retry",
                    {"operacao": descricao, "tentativa": tentativa, "erro": str(e)},
                    level="warning",
                )
                sleep(esperas[tentativa - 1])
                tentativa += 1


WriteListener = Callable[[str, Optional[int]], None]


class KeyValueStore:
    def __init__(self, db_path: str, retry: Optional[RetryPolicy] = None):
        self.db_path = db_path
        self.retry = retry or RetryPolicy()
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        self._after_commit: List[Callable[[], None]] = []
        self._listeners: List[WriteListener] = []

    # -------------------------
    # conexão / transação
    # -------------------------

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        if self._conn is not None:
            yield self._conn
        else:
            with connect(self.db_path) as c:
                yield c

    @contextmanager
    def transaction(self) -> Iterator["KeyValueStore"]:
        """Agrupa operações numa única transação (commit ao sair)."""
        with self._lock:
            if self._conn is not None:
                # transação aninhada: participa da externa
                yield self
                return
            callbacks: List[Callable[[], None]] = []
            try:
                with connect(self.db_path) as c:
                    self._conn = c
                    try:
                        yield self
                    finally:
                        self._conn = None
                        callbacks, self._after_commit = self._after_commit, []
            except sqlite3.Error as e:
                raise StorageFailure(f"Falha na transação: {e}") from e
        for cb in callbacks:
            cb()

    def call_after_commit(self, callback: Callable[[], None]) -> None:
        """Agenda ``callback`` para depois do commit da transação ativa.

        Fora de transação executa imediatamente. O mesmo callback só é
        registrado uma vez por transação.
        """
        if self._conn is None:
            callback()
            return
        if callback not in self._after_commit:
            self._after_commit.append(callback)

    # -------------------------
    # operações chave/valor
    # -------------------------

    def get(self, key: str) -> Optional[str]:
        try:
            with self._lock, self._connection() as c:
                row = c.execute("SELECT valor FROM kv_store WHERE chave = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageFailure(f"Falha ao ler '{key}': {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> int:
        versao = time.time_ns()

        def op(c: sqlite3.Connection) -> None:
            c.execute(
                """
                INSERT INTO kv_store (chave, valor, versao)
                VALUES (?, ?, ?)
                ON CONFLICT(chave) DO UPDATE SET
                    valor=excluded.valor,
                    versao=excluded.versao
                """,
                (key, value, versao),
            )

        self._write(key, "SET", op)
        self.call_after_commit(lambda: self._notify(key, versao))
        return versao

    def remove(self, key: str) -> None:
        self._write(key, "REMOVE", lambda c: c.execute("DELETE FROM kv_store WHERE chave = ?", (key,)))
        self.call_after_commit(lambda: self._notify(key, None))

    def keys(self) -> List[str]:
        try:
            with self._lock, self._connection() as c:
                return [r[0] for r in c.execute("SELECT chave FROM kv_store ORDER BY chave").fetchall()]
        except sqlite3.Error as e:
            raise StorageFailure(f"Falha ao listar chaves: {e}") from e

    def versions(self) -> Dict[str, int]:
        """Mapeia chave -> versão da última gravação."""
        try:
            with self._lock, self._connection() as c:
                return {r[0]: r[1] for r in c.execute("SELECT chave, versao FROM kv_store").fetchall()}
        except sqlite3.Error as e:
            raise StorageFailure(f"Falha ao ler versões: {e}") from e

    def _write(self, key: str, operation: str, op: Callable[[sqlite3.Connection], object]) -> None:
        def attempt() -> None:
            with self._lock, self._connection() as c:
                op(c)

        try:
            if self._conn is not None:
                # dentro de transação não há nova tentativa: a conexão é a mesma
                attempt()
            else:
                self.retry.run(attempt, descricao=f"{operation} {key}")
        except sqlite3.Error as e:
            log_system_event("storage_failure", {"key": key, "operation": operation, "error": str(e)}, level="error")
            raise StorageFailure(f"Falha ao gravar '{key}': {e}") from e
        log_database_operation(key, operation, 1)

    # -------------------------
    # notificação de gravações
    # -------------------------

    def subscribe(self, listener: WriteListener) -> None:
        """Registra ``listener(chave, versao)`` chamado a cada gravação desta instância."""
        self._listeners.append(listener)

    def _notify(self, key: str, versao: Optional[int]) -> None:
        for listener in list(self._listeners):
            listener(key, versao)
