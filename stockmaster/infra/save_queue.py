"""
Fila de gravação com debounce e execução single-flight.

Contrato:
- ``queue_save(op, key=None)`` enfileira em ordem FIFO; com ``key``, uma
  operação com a mesma chave ainda pendente absorve a nova chamada.
- Um flush só começa quando pelo menos ``debounce_s`` se passou desde o
  início do flush anterior; chamadas dentro da janela reagendam um único timer.
- Nunca há dois flushes simultâneos; cada operação é aguardada antes da
  próxima; uma operação que falha é registrada no log e descartada, e as
  demais continuam.

Sem event loop em execução (uso síncrono, ex.: CLI) a fila é drenada na
própria chamada quando a janela permite; caso contrário fica pendente até
``drain()``.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Optional

from stockmaster.config import DEFAULTS
from stockmaster.infra.logger import log_system_event


@dataclass
class PendingSave:
    operation: Callable[[], Any]
    key: Optional[str] = None
    queued_at: float = field(default_factory=time.time)


class SaveQueue:
    def __init__(self, debounce_s: float = DEFAULTS.save_debounce_s, clock: Callable[[], float] = time.monotonic):
        self.debounce_s = debounce_s
        self._clock = clock
        self._queue: Deque[PendingSave] = deque()
        self._processing = False
        self._last_flush: Optional[float] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._processing

    def queue_save(self, operation: Callable[[], Any], key: Optional[str] = None) -> bool:
        """Enfileira ``operation``. Retorna ``False`` quando foi absorvida por outra pendente."""
        if key is not None and any(p.key == key for p in self._queue):
            return False
        self._queue.append(PendingSave(operation, key))
        self._debounce()
        return True

    def _remaining_window(self) -> float:
        if self._last_flush is None:
            return 0.0
        return max(0.0, self.debounce_s - (self._clock() - self._last_flush))

    def _debounce(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        remaining = self._remaining_window()
        if loop is None:
            if remaining <= 0 and not self._processing:
                self.drain()
            return

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if remaining > 0:
            self._timer = loop.call_later(remaining, self._on_timer)
        elif self._task is None or self._task.done():
            self._task = loop.create_task(self.process_save_queue())

    def _on_timer(self) -> None:
        self._timer = None
        self._debounce()

    def _start_flush(self) -> bool:
        if self._processing or not self._queue:
            return False
        self._processing = True
        self._last_flush = self._clock()
        return True

    async def process_save_queue(self) -> int:
        """Drena a fila (FIFO, uma operação por vez). Retorna quantas rodaram."""
        if not self._start_flush():
            return 0
        executed = 0
        try:
            while self._queue:
                item = self._queue.popleft()
                try:
                    result = item.operation()
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    log_system_event("save_queue_error", {"key": item.key, "error": str(e)}, level="error")
                executed += 1
        finally:
            self._processing = False
        return executed

    def drain(self) -> int:
        """Drena a fila de forma síncrona (ex.: encerramento)."""
        if not self._start_flush():
            return 0
        executed = 0
        try:
            while self._queue:
                item = self._queue.popleft()
                try:
                    result = item.operation()
                    if inspect.isawaitable(result):
                        asyncio.run(_await(result))
                except Exception as e:
                    log_system_event("save_queue_error", {"key": item.key, "error": str(e)}, level="error")
                executed += 1
        finally:
            self._processing = False
        return executed

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


async def _await(awaitable: Any) -> Any:
    return await awaitable
