"""
StockDatabase: ponto de composição da camada de persistência.

Monta armazenamento, repositórios, gerenciador de backup e fila de
gravação, e expõe a fachada usada pela CLI e pelos casos de uso
(``add_product``, ``get_movements``, ``export_data``...). A instância é
criada explicitamente pelo ponto de entrada e passada adiante.

Timers (``start()``, asyncio):
- backup periódico (5 min) e um backup logo após iniciar (2 s);
- checagem de integridade (30 s);
- validação completa (5 min);
- detecção de gravações feitas por outro processo (5 s).
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from stockmaster.config import CATEGORIES_KEY, DEFAULTS, DefaultConfig, GENERAL_SETTINGS, MOVEMENTS_KEY, PRODUCTS_KEY, STORE_PATH
from stockmaster.domain.errors import StockError
from stockmaster.infra.backup import BackupManager
from stockmaster.infra.logger import log_system_event, log_transaction
from stockmaster.infra.migrations import apply_migrations
from stockmaster.infra.repositories import CategoriaRepo, ConfiguracaoRepo, MovimentoRepo, ProdutoRepo
from stockmaster.infra.save_queue import SaveQueue
from stockmaster.infra.storage import KeyValueStore, RetryPolicy


WATCHED_KEYS = (PRODUCTS_KEY, MOVEMENTS_KEY, CATEGORIES_KEY)

ChangeListener = Callable[[str], None]


class StockDatabase:
    def __init__(
        self,
        db_path: str = STORE_PATH,
        config: DefaultConfig = DEFAULTS,
        retry: Optional[RetryPolicy] = None,
    ):
        self.db_path = db_path
        self.config = config
        self.store = KeyValueStore(
            db_path,
            retry or RetryPolicy(config.retry_max_attempts, config.retry_delay_s, config.retry_backoff),
        )
        self.produtos = ProdutoRepo(self.store, on_mutation=self._on_mutation)
        self.movimentos = MovimentoRepo(self.store, on_mutation=self._on_mutation)
        self.categorias = CategoriaRepo(self.store, on_mutation=self._on_mutation)
        self.configuracoes = ConfiguracaoRepo(self.store, on_mutation=self._on_mutation)
        self.backup = BackupManager(
            self.store,
            self.produtos,
            self.movimentos,
            self.categorias,
            self.configuracoes,
            max_backups=config.max_backups,
        )
        self.save_queue = SaveQueue(debounce_s=config.save_debounce_s)
        self._tasks: List[asyncio.Task] = []
        self._listeners: List[ChangeListener] = []
        self._known_versions: Dict[str, Optional[int]] = {}
        self.store.subscribe(self._on_own_write)

    @classmethod
    def open(cls, db_path: str = STORE_PATH, **kwargs) -> "StockDatabase":
        db = cls(db_path, **kwargs)
        db.init()
        return db

    def init(self) -> Dict[str, Any]:
        """Migrações, categorias padrão e validação inicial."""
        apply_migrations(self.db_path)
        try:
            self.backup.seed_default_categories()
        except StockError as e:
            log_system_event("seed_failed", {"error": str(e)}, level="error")
        report = self.backup.validate_and_recover_data()
        self._known_versions = self._watched_versions()
        log_system_event("database_initialized", {"db_path": self.db_path, "validation": report})
        return report

    # ----------------------
    # backup automático
    # ----------------------

    def _on_mutation(self, key: str) -> None:
        self.store.call_after_commit(self._schedule_backup)

    def _schedule_backup(self) -> None:
        self.save_queue.queue_save(self.backup.create_backup, key="backup")

    # ----------------------
    # fachada: produtos
    # ----------------------

    def add_product(self, product) -> Dict[str, Any]:
        try:
            row = self.produtos.add(product)
        except StockError as e:
            log_transaction("add_product", {"product": str(product)}, error=str(e))
            raise
        log_transaction("add_product", {"code": row["code"]}, result=row["id"])
        return row

    def get_products(self) -> List[Dict[str, Any]]:
        return self.produtos.get_all()

    def get_product(self, id: Any) -> Optional[Dict[str, Any]]:
        return self.produtos.get_by_id(id)

    def update_product(self, id: Any, updates: Dict[str, Any]) -> Dict[str, Any]:
        try:
            row = self.produtos.update(id, updates)
        except StockError as e:
            log_transaction("update_product", {"id": id, "updates": updates}, error=str(e))
            raise
        log_transaction("update_product", {"id": id, "updates": updates}, result="success")
        return row

    def delete_product(self, id: Any) -> bool:
        removed = self.produtos.delete(id)
        log_transaction("delete_product", {"id": id}, result=removed)
        return removed

    # ----------------------
    # fachada: movimentações
    # ----------------------

    def add_movement(self, movement) -> Dict[str, Any]:
        try:
            row = self.movimentos.add(movement)
        except StockError as e:
            log_transaction("add_movement", {"movement": str(movement)}, error=str(e))
            raise
        log_transaction("add_movement", {"productId": row["productId"], "type": row["type"]}, result=row["id"])
        return row

    def get_movements(self, product_id: Any = None) -> List[Dict[str, Any]]:
        return self.movimentos.get_all(product_id)

    def delete_movement(self, id: Any) -> bool:
        return self.movimentos.delete(id)

    # ----------------------
    # fachada: categorias e configurações
    # ----------------------

    def add_category(self, category) -> Optional[Dict[str, Any]]:
        return self.categorias.add(category)

    def get_categories(self) -> List[Dict[str, Any]]:
        return self.categorias.get_all()

    def delete_category(self, id: Any) -> bool:
        return self.categorias.delete(id)

    def save_setting(self, key: str, value: Any) -> None:
        self.configuracoes.save(key, value)

    def get_setting(self, key: str = GENERAL_SETTINGS) -> Any:
        return self.configuracoes.get(key)

    # ----------------------
    # fachada: backup / recuperação
    # ----------------------

    def export_data(self) -> Dict[str, Any]:
        return self.backup.export_data()

    def import_data(self, data: Dict[str, Any]) -> bool:
        return self.backup.import_data(data)

    def clear_all_data(self) -> None:
        self.backup.clear_all_data()

    def create_backup(self) -> Optional[Dict[str, Any]]:
        return self.backup.create_backup()

    def get_backups(self) -> List[Dict[str, Any]]:
        return self.backup.get_backups()

    def recover_from_backup(self) -> bool:
        return self.backup.recover_from_backup()

    def validate_and_recover_data(self) -> Dict[str, Any]:
        return self.backup.validate_and_recover_data()

    def check_integrity(self) -> bool:
        return self.backup.check_integrity()

    # ----------------------
    # mudanças feitas por outro processo
    # ----------------------

    def subscribe(self, listener: ChangeListener) -> None:
        """``listener(chave)`` é chamado quando outro processo altera uma coleção."""
        self._listeners.append(listener)

    def _watched_versions(self) -> Dict[str, Optional[int]]:
        versions = self.store.versions()
        return {k: versions.get(k) for k in WATCHED_KEYS}

    def _on_own_write(self, key: str, versao: Optional[int]) -> None:
        if key in WATCHED_KEYS:
            self._known_versions[key] = versao

    def poll_external_changes(self) -> List[str]:
        current = self._watched_versions()
        changed = [k for k in WATCHED_KEYS if current.get(k) != self._known_versions.get(k)]
        self._known_versions = current
        for key in changed:
            log_system_event("external_change", {"key": key})
            for listener in list(self._listeners):
                listener(key)
        return changed

    # ----------------------
    # timers e encerramento
    # ----------------------

    async def _periodic(self, name: str, interval_s: float, func: Callable[[], Any], initial_delay_s: Optional[float] = None) -> None:
        delay = interval_s if initial_delay_s is None else initial_delay_s
        while True:
            await asyncio.sleep(delay)
            delay = interval_s
            try:
                func()
            except Exception as e:
                log_system_event("timer_error", {"timer": name, "error": str(e)}, level="error")

    async def _once(self, name: str, delay_s: float, func: Callable[[], Any]) -> None:
        await asyncio.sleep(delay_s)
        try:
            func()
        except Exception as e:
            log_system_event("timer_error", {"timer": name, "error": str(e)}, level="error")

    def start(self) -> List[asyncio.Task]:
        """Inicia os timers no event loop em execução."""
        if self._tasks:
            return self._tasks
        cfg = self.config
        jobs: List[Awaitable[None]] = [
            self._once("initial_backup", cfg.initial_backup_delay_s, self.backup.create_backup),
            self._periodic("backup", cfg.backup_interval_s, self.backup.create_backup),
            self._periodic("integrity_check", cfg.integrity_check_interval_s, self.backup.check_integrity),
            self._periodic("deep_validation", cfg.deep_validation_interval_s, self.backup.validate_and_recover_data),
            self._periodic("external_changes", cfg.change_poll_interval_s, self.poll_external_changes),
        ]
        self._tasks = [asyncio.create_task(job) for job in jobs]
        log_system_event("timers_started", {"count": len(self._tasks)})
        return self._tasks

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.save_queue.cancel_timer()

    def close(self) -> int:
        """Drena operações pendentes da fila de gravação."""
        return self.save_queue.drain()

    def force_save(self) -> Optional[Dict[str, Any]]:
        self.save_queue.drain()
        return self.backup.create_backup()

    async def destroy(self) -> Optional[Dict[str, Any]]:
        """Cancela os timers e força um último backup."""
        await self.stop()
        await self.save_queue.process_save_queue()
        snapshot = self.backup.create_backup()
        log_system_event("database_destroyed", {"db_path": self.db_path})
        return snapshot
