# stockmaster/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios aceitam dicionários; as dataclasses são opcionais
  e servem para tipagem/clareza. Use-as quando fizer sentido.
- Os blobs armazenados usam os nomes de campo do formato de intercâmbio
  (camelCase: ``minStock``, ``productId``, ``createdAt``...). A função
  ``as_record`` faz a conversão a partir dos atributos snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass
from typing import Any, Dict, Optional, Union


# atributo da dataclass -> chave no blob armazenado
_RECORD_KEYS = {
    "min_stock": "minStock",
    "product_id": "productId",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "company_name": "companyName",
    "low_stock_threshold": "lowStockThreshold",
}

MOVEMENT_TYPES = ("entrada", "saida")


@dataclass
class Produto:
    """Cadastro de produto."""
    code: str
    name: str
    category: str
    quantity: int = 0
    price: float = 0.0
    min_stock: int = 10
    description: Optional[str] = None
    supplier: Optional[str] = None
    id: Optional[Any] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Movimento:
    """Movimentação de estoque: 'entrada' ou 'saida'."""
    product_id: Any
    type: str
    quantity: int
    reason: str = ""
    id: Optional[Any] = None
    date: Optional[str] = None


@dataclass
class Categoria:
    name: str
    description: Optional[str] = None
    id: Optional[Any] = None


@dataclass
class ConfiguracaoGeral:
    """Configurações do grupo ``general``."""
    company_name: str = ""
    low_stock_threshold: int = 10
    currency: str = "BRL"


Entidade = Union[Dict[str, Any], Produto, Movimento, Categoria, ConfiguracaoGeral]


def as_record(obj: Any) -> Dict[str, Any]:
    """Converte dict/dataclass para o formato armazenado (cópia rasa).

    Campos opcionais com valor ``None`` das dataclasses são omitidos.
    """
    if isinstance(obj, dict):
        return dict(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        out: Dict[str, Any] = {}
        for f in fields(obj):
            val = getattr(obj, f.name)
            if val is None:
                continue
            out[_RECORD_KEYS.get(f.name, f.name)] = val
        return out
    raise TypeError("entity must be dict or dataclass")
