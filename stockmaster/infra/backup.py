# stockmaster/infra/backup.py
"""
Backup, restauração e validação dos dados.

Responsabilidades:
- exportar/importar o estado completo (documento de intercâmbio);
- manter um anel de snapshots verificados por checksum (chave
  `stockmaster_backups`, no máximo ``max_backups`` entradas, o mais antigo
  sai primeiro);
- restaurar o snapshot válido mais recente;
- validar as coleções e corrigir o que for possível (restauração completa
  ou remoção de movimentações órfãs).

Ciclo de vida de um snapshot:
    Não verificado (gravado) -> Verificado (checksum conferido numa
    varredura de recuperação) -> Descartado (empurrado para fora do anel).
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Iterable, List, Optional

from stockmaster.config import BACKUP_KEY, DEFAULT_CATEGORIES, DEFAULTS, GENERAL_SETTINGS
from stockmaster.domain.checksum import calculate_checksum
from stockmaster.domain.errors import StockError
from stockmaster.infra.logger import log_backup_event, log_system_event
from stockmaster.infra.repositories import (
    CategoriaRepo,
    ConfiguracaoRepo,
    MovimentoRepo,
    ProdutoRepo,
    now_iso,
    same_id,
)
from stockmaster.infra.storage import KeyValueStore


class BackupManager:
    def __init__(
        self,
        store: KeyValueStore,
        produtos: ProdutoRepo,
        movimentos: MovimentoRepo,
        categorias: CategoriaRepo,
        configuracoes: ConfiguracaoRepo,
        max_backups: int = DEFAULTS.max_backups,
    ):
        self.store = store
        self.produtos = produtos
        self.movimentos = movimentos
        self.categorias = categorias
        self.configuracoes = configuracoes
        self.max_backups = max_backups

    @property
    def _repos(self):
        return (self.produtos, self.movimentos, self.categorias, self.configuracoes)

    # ----------------------
    # exportação / importação
    # ----------------------

    def export_data(self) -> Dict[str, Any]:
        return {
            "products": self.produtos.get_all(),
            "movements": self.movimentos.get_all(),
            "categories": self.categorias.get_all(),
            "settings": self.configuracoes.get(GENERAL_SETTINGS),
            "exportDate": now_iso(),
        }

    def import_data(self, data: Dict[str, Any]) -> bool:
        """Substitui todo o estado por ``data``. Nunca levanta exceção.

        Ordem: categorias, produtos, movimentações, configurações. Tudo roda
        numa única transação; se algo falhar o estado anterior é mantido.
        """
        if not isinstance(data, dict):
            log_backup_event("import_failed", level="error", reason="documento não é um objeto")
            return False
        try:
            with self.store.transaction():
                self._clear_collections()
                for categoria in data.get("categories") or []:
                    self.categorias.add(categoria)
                for produto in data.get("products") or []:
                    self.produtos.add(produto, preserve_timestamps=True)
                for movimento in data.get("movements") or []:
                    self.movimentos.add(movimento, preserve_timestamps=True)
                if data.get("settings"):
                    self.configuracoes.save(GENERAL_SETTINGS, data["settings"])
        except Exception as e:
            log_backup_event("import_failed", level="error", reason=str(e))
            return False
        log_backup_event(
            "imported",
            products=len(data.get("products") or []),
            movements=len(data.get("movements") or []),
            categories=len(data.get("categories") or []),
        )
        return True

    def _clear_collections(self) -> None:
        for repo in self._repos:
            repo.clear()

    def seed_default_categories(self, categories: Iterable[Dict[str, Any]] = DEFAULT_CATEGORIES) -> int:
        """Cria as categorias padrão quando não há nenhuma. Retorna quantas criou."""
        if self.categorias.get_all():
            return 0
        created = 0
        for categoria in categories:
            if self.categorias.add(dict(categoria)) is not None:
                created += 1
        return created

    def clear_all_data(self, backup_first: bool = True, reseed: bool = True) -> None:
        if backup_first:
            self.create_backup()
        with self.store.transaction():
            self._clear_collections()
            if reseed:
                self.seed_default_categories()
        log_system_event("data_cleared", {"reseed": reseed})

    # ----------------------
    # anel de backups
    # ----------------------

    def get_backups(self) -> List[Dict[str, Any]]:
        try:
            raw = self.store.get(BACKUP_KEY)
        except StockError as e:
            log_backup_event("read_failed", level="error", reason=str(e))
            return []
        if not raw:
            return []
        try:
            backups = json.loads(raw)
        except ValueError as e:
            log_backup_event("read_failed", level="error", reason=str(e))
            return []
        return backups if isinstance(backups, list) else []

    def unreadable_collections(self) -> Dict[str, str]:
        """Mapeia chave -> motivo para cada coleção ilegível."""
        out: Dict[str, str] = {}
        for repo in self._repos:
            result = repo.read()
            if not result.ok:
                out[repo.key] = result.error
        return out

    def create_backup(self) -> Optional[Dict[str, Any]]:
        """Grava um novo snapshot no anel. Retorna o snapshot ou ``None``."""
        broken = self.unreadable_collections()
        if broken:
            # um snapshot do estado mascarado viraria o backup "válido" mais novo
            log_backup_event("skipped", level="warning", unreadable=broken)
            return None
        try:
            data = self.export_data()
            snapshot = {
                "timestamp": int(time.time() * 1000),
                "data": data,
                "checksum": calculate_checksum(data),
            }
            backups = self.get_backups()
            backups.append(snapshot)
            if len(backups) > self.max_backups:
                del backups[: len(backups) - self.max_backups]
            self.store.set(BACKUP_KEY, json.dumps(backups, ensure_ascii=False))
        except StockError as e:
            log_backup_event("failed", level="error", reason=str(e))
            return None
        log_backup_event("created", timestamp=snapshot["timestamp"], total=len(backups))
        return snapshot

    @staticmethod
    def verify_backup(snapshot: Any) -> bool:
        if not isinstance(snapshot, dict) or "data" not in snapshot:
            return False
        try:
            return calculate_checksum(snapshot["data"]) == snapshot.get("checksum")
        except (TypeError, ValueError):
            return False

    def recover_from_backup(self) -> bool:
        """Restaura o snapshot válido mais recente. ``False`` se nenhum servir."""
        backups = self.get_backups()
        if not backups:
            log_backup_event("no_backups", level="warning")
            return False

        for index in range(len(backups) - 1, -1, -1):
            snapshot = backups[index]
            if not self.verify_backup(snapshot):
                log_backup_event("invalid", level="warning", index=index)
                continue
            log_backup_event("verified", index=index, timestamp=snapshot.get("timestamp"))
            if self.import_data(snapshot["data"]):
                log_backup_event("restored", index=index, timestamp=snapshot.get("timestamp"))
                return True
            log_backup_event("restore_failed", level="warning", index=index)

        log_backup_event("no_valid_backup", level="error")
        return False

    # ----------------------
    # validação
    # ----------------------

    def check_integrity(self) -> bool:
        """Checagem leve: todas as coleções legíveis. Tenta recuperar se não."""
        broken = self.unreadable_collections()
        if not broken:
            return True
        log_system_event("integrity_check_failed", broken, level="warning")
        return self.recover_from_backup()

    def validate_and_recover_data(self) -> Dict[str, Any]:
        """Valida a estrutura dos dados e corrige o que for possível.

        Returns:
            ``{"status": ok|recovered|recovery_failed|orphans_removed,
            "orphans_removed": int, "reason": str|None}``
        """
        reason = None
        broken = self.unreadable_collections()
        products: List[Dict[str, Any]] = []
        movements: List[Dict[str, Any]] = []
        if broken:
            reason = "; ".join(f"{k}: {v}" for k, v in broken.items())
        else:
            products = self.produtos.get_all()
            movements = self.movimentos.get_all()
            bad_products = [p for p in products if not isinstance(p, dict) or not (p.get("id") and p.get("name") and p.get("code"))]
            bad_movements = [m for m in movements if not isinstance(m, dict) or not (m.get("id") and m.get("productId") and m.get("type"))]
            if bad_products or bad_movements:
                reason = f"{len(bad_products)} produto(s) e {len(bad_movements)} movimentação(ões) inválidos"

        if reason:
            log_system_event("corruption_detected", {"reason": reason}, level="warning")
            recovered = self.recover_from_backup()
            return {
                "status": "recovered" if recovered else "recovery_failed",
                "orphans_removed": 0,
                "reason": reason,
            }

        orphans = [m for m in movements if not any(same_id(p.get("id"), m.get("productId")) for p in products)]
        for movement in orphans:
            self.movimentos.delete(movement["id"])
        if orphans:
            log_system_event("orphans_removed", {"count": len(orphans)}, level="warning")
            return {"status": "orphans_removed", "orphans_removed": len(orphans), "reason": None}

        log_system_event("validation_ok")
        return {"status": "ok", "orphans_removed": 0, "reason": None}
