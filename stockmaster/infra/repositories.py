# stockmaster/infra/repositories.py
"""
Repositórios das coleções armazenadas como blobs JSON.

Classes:
- ProdutoRepo        -> chave `products`
- MovimentoRepo      -> chave `movements`
- CategoriaRepo      -> chave `categories`
- ConfiguracaoRepo   -> chave `settings`

Todas as gravações reescrevem a coleção inteira. Leituras com falha
(JSON inválido, formato errado, erro do armazenamento) aparecem como
``ReadResult.failure`` em ``read()`` e como coleção vazia em ``get_all()``.
Gravar sobre um blob ilegível levanta ``CorruptionDetected``.
"""

from __future__ import annotations

import json
import secrets
import time
from dataclasses import is_dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from stockmaster.config import (
    CATEGORIES_KEY,
    DEFAULTS,
    MOVEMENTS_KEY,
    PRODUCTS_KEY,
    SETTINGS_KEY,
)
from stockmaster.domain import policies
from stockmaster.domain.errors import CorruptionDetected, NotFoundError, StorageFailure, ValidationError
from stockmaster.domain.models import as_record
from stockmaster.domain.result import ReadResult
from stockmaster.infra.logger import log_database_operation, log_system_event
from stockmaster.infra.storage import KeyValueStore


MutationHook = Callable[[str], None]


# -------------------------
# Helpers
# -------------------------

def new_id() -> str:
    """Id único o bastante: timestamp em ns (hex) + sufixo aleatório."""
    return f"{time.time_ns():x}-{secrets.token_hex(3)}"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def same_id(a: Any, b: Any) -> bool:
    # documentos importados podem trazer ids numéricos
    if a is None or b is None:
        return False
    return a == b or str(a) == str(b)


def _later_than(previous: Optional[str]) -> str:
    """Timestamp atual, garantidamente posterior a ``previous``."""
    now = datetime.now(timezone.utc)
    if previous:
        try:
            prev = datetime.fromisoformat(previous)
        except (TypeError, ValueError):
            prev = None
        if prev is not None and prev.tzinfo is not None and now <= prev:
            now = prev + timedelta(microseconds=1)
    return now.isoformat()


# -------------------------
# Base
# -------------------------

class _BlobRepo:
    key: str = ""
    shape: type = list
    entity: str = "registro"

    def __init__(self, store: KeyValueStore, on_mutation: Optional[MutationHook] = None):
        self.store = store
        self.on_mutation = on_mutation

    def read(self) -> ReadResult:
        try:
            raw = self.store.get(self.key)
        except StorageFailure as e:
            return ReadResult.failure(str(e))
        if raw is None:
            return ReadResult.success(self.shape())
        try:
            data = json.loads(raw)
        except ValueError as e:
            return ReadResult.failure(f"JSON inválido: {e}")
        if not isinstance(data, self.shape):
            return ReadResult.failure(f"esperado {self.shape.__name__}, encontrado {type(data).__name__}")
        return ReadResult.success(data)

    def _load(self):
        """Leitura com erro mascarado (coleção vazia)."""
        result = self.read()
        if not result.ok:
            log_system_event("corrupted_read", {"key": self.key, "reason": result.error}, level="warning")
        return result.unwrap_or(self.shape())

    def _load_for_write(self):
        result = self.read()
        if not result.ok:
            raise CorruptionDetected(self.key, result.error)
        return result.value

    def _save(self, data, operation: str, affected: int = 1) -> None:
        self.store.set(self.key, json.dumps(data, ensure_ascii=False))
        log_database_operation(self.key, operation, affected)
        if self.on_mutation is not None:
            self.on_mutation(self.key)

    def clear(self) -> None:
        self.store.remove(self.key)
        log_database_operation(self.key, "CLEAR")


class _CollectionRepo(_BlobRepo):
    def get_all(self) -> List[Dict[str, Any]]:
        return self._load()

    def get_by_id(self, id: Any) -> Optional[Dict[str, Any]]:
        for row in self.get_all():
            if same_id(row.get("id"), id):
                return row
        return None

    def delete(self, id: Any) -> bool:
        rows = self._load_for_write()
        kept = [r for r in rows if not same_id(r.get("id"), id)]
        if len(kept) == len(rows):
            return False
        self._save(kept, "DELETE", len(rows) - len(kept))
        return True

    def _append(self, row: Dict[str, Any], rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        if row.get("id") in (None, ""):
            row["id"] = new_id()
        rows.append(row)
        self._save(rows, "ADD")
        return row


# -------------------------
# Produto
# -------------------------

class ProdutoRepo(_CollectionRepo):
    key = PRODUCTS_KEY
    entity = "produto"
    required = ("name", "code", "category")

    @staticmethod
    def _normalize(row: Dict[str, Any], partial: bool = False) -> None:
        if not partial or "quantity" in row:
            row["quantity"] = policies.non_negative_int(row.get("quantity"), "quantity", default=0)
        if not partial or "price" in row:
            row["price"] = policies.non_negative_decimal(row.get("price"), "price", default=0.0)
        if not partial or "minStock" in row:
            row["minStock"] = policies.non_negative_int(row.get("minStock"), "minStock", default=DEFAULTS.min_stock)

    def add(self, produto, preserve_timestamps: bool = False) -> Dict[str, Any]:
        row = as_record(produto)
        policies.require_fields(row, self.required, self.entity)
        row["code"] = str(row["code"]).strip()
        self._normalize(row)

        rows = self._load_for_write()
        if any(r.get("code") == row["code"] for r in rows):
            raise ValidationError(f"Código de produto já existe: {row['code']}")

        now = now_iso()
        if not (preserve_timestamps and row.get("createdAt")):
            row["createdAt"] = now
        if not (preserve_timestamps and row.get("updatedAt")):
            row["updatedAt"] = now
        return self._append(row, rows)

    def update(self, id: Any, updates: Dict[str, Any]) -> Dict[str, Any]:
        if id is None or not updates:
            raise ValidationError("Parâmetros inválidos para atualização")
        changes = as_record(updates)
        changes.pop("id", None)
        self._normalize(changes, partial=True)

        rows = self._load_for_write()
        idx = next((i for i, r in enumerate(rows) if same_id(r.get("id"), id)), None)
        if idx is None:
            raise NotFoundError(f"Produto não encontrado: {id}")

        if "code" in changes:
            changes["code"] = str(changes["code"]).strip()
            if not changes["code"]:
                raise ValidationError("'code' não pode ser vazio")
            if any(r.get("code") == changes["code"] for i, r in enumerate(rows) if i != idx):
                raise ValidationError(f"Código de produto já existe: {changes['code']}")
        for campo in ("name", "category"):
            if campo in changes and policies.is_blank(changes[campo]):
                raise ValidationError(f"'{campo}' não pode ser vazio")

        merged = {**rows[idx], **changes}
        merged["updatedAt"] = _later_than(rows[idx].get("updatedAt"))
        rows[idx] = merged
        self._save(rows, "UPDATE")
        return merged


# -------------------------
# Movimentações
# -------------------------

class MovimentoRepo(_CollectionRepo):
    key = MOVEMENTS_KEY
    entity = "movimentação"
    required = ("productId", "type", "quantity")

    def add(self, movimento, preserve_timestamps: bool = False) -> Dict[str, Any]:
        row = as_record(movimento)
        policies.require_fields(row, self.required, self.entity)
        row["type"] = policies.movement_type(row["type"])
        row["quantity"] = policies.positive_int(row["quantity"], "quantity")
        row["reason"] = str(row.get("reason") or "").strip()
        if not (preserve_timestamps and row.get("date")):
            row["date"] = now_iso()

        rows = self._load_for_write()
        return self._append(row, rows)

    def get_all(self, product_id: Any = None) -> List[Dict[str, Any]]:
        rows = self._load()
        if product_id is None:
            return rows
        return [m for m in rows if same_id(m.get("productId"), product_id)]


# -------------------------
# Categorias
# -------------------------

class CategoriaRepo(_CollectionRepo):
    key = CATEGORIES_KEY
    entity = "categoria"
    required = ("name",)

    def add(self, categoria) -> Optional[Dict[str, Any]]:
        """Adiciona uma categoria; nome repetido retorna ``None`` sem gravar."""
        row = as_record(categoria)
        policies.require_fields(row, self.required, self.entity)
        row["name"] = str(row["name"]).strip()

        rows = self._load_for_write()
        if any(c.get("name") == row["name"] for c in rows):
            log_system_event("category_exists", {"name": row["name"]})
            return None
        return self._append(row, rows)


# -------------------------
# Configurações
# -------------------------

class ConfiguracaoRepo(_BlobRepo):
    key = SETTINGS_KEY
    shape = dict
    entity = "configuração"

    def get_all(self) -> Dict[str, Any]:
        return self._load()

    def get(self, name: str, default: Any = None) -> Any:
        val = self.get_all().get(name)
        return default if val is None else val

    def save(self, name: str, value: Any) -> None:
        settings = self._load_for_write()
        if isinstance(value, dict) or is_dataclass(value):
            value = as_record(value)
        settings[name] = value
        self._save(settings, "SET")
