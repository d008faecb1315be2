"""
Regras de validação e classificação de estoque.

Este módulo contém funções que encapsulam regras de negócio: validação e
normalização dos campos numéricos das entidades, classificação do nível
de estoque e cálculo do valor em estoque. São usadas pelos repositórios
(ao gravar) e pelos relatórios (ao consolidar o dashboard).
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

from stockmaster.adapters.parsers import parse_decimal, parse_inteiro
from stockmaster.domain.errors import ValidationError
from stockmaster.domain.models import MOVEMENT_TYPES


# maior inteiro aceito em quantidades (INTEGER do SQLite / int64 do pandas)
MAX_INT = 2 ** 63 - 1


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(record: Dict[str, Any], campos: Sequence[str], entidade: str) -> None:
    """Garante que os campos obrigatórios estão presentes e não vazios.

    Raises:
        ValidationError: listando todos os campos ausentes.
    """
    faltando = [c for c in campos if is_blank(record.get(c))]
    if faltando:
        raise ValidationError(
            f"Dados inválidos de {entidade} - campos obrigatórios ausentes: {', '.join(faltando)}"
        )


def non_negative_int(value: Any, campo: str, default: int = 0) -> int:
    """Normaliza um inteiro >= 0; ``None``/vazio vira ``default``."""
    if is_blank(value):
        return default
    num = parse_inteiro(value)
    if num is None:
        raise ValidationError(f"'{campo}' deve ser um número inteiro: {value!r}")
    if num < 0:
        raise ValidationError(f"'{campo}' não pode ser negativo: {num}")
    if num > MAX_INT:
        raise ValidationError(f"'{campo}' excede o limite permitido")
    return num


def positive_int(value: Any, campo: str) -> int:
    num = non_negative_int(value, campo, default=0)
    if num <= 0:
        raise ValidationError(f"'{campo}' deve ser maior que zero")
    return num


def non_negative_decimal(value: Any, campo: str, default: float = 0.0) -> float:
    if is_blank(value):
        return default
    num = parse_decimal(value)
    if num is None or not math.isfinite(num):
        raise ValidationError(f"'{campo}' deve ser um número: {value!r}")
    if num < 0:
        raise ValidationError(f"'{campo}' não pode ser negativo: {num}")
    return num


def movement_type(value: Any) -> str:
    tipo = str(value or "").strip().lower()
    if tipo not in MOVEMENT_TYPES:
        raise ValidationError(f"Tipo de movimentação inválido: {value!r} (use 'entrada' ou 'saida')")
    return tipo


def stock_status(quantity: Optional[float], min_stock: Optional[float] = 10) -> str:
    """Classifica o nível de estoque de um produto.

    Regras:
        - ``quantity == 0`` → ``'out'`` (esgotado)
        - ``quantity <= min_stock`` → ``'low'`` (estoque baixo)
        - caso contrário → ``'normal'``

    Quantidade ausente é tratada como zero; ``min_stock`` ausente como 10.
    """
    q = float(quantity or 0)
    m = float(min_stock if min_stock is not None else 10)
    if q == 0:
        return "out"
    if q <= m:
        return "low"
    return "normal"


STATUS_TEXT = {"normal": "Normal", "low": "Baixo", "out": "Esgotado"}


def stock_status_text(status: str) -> str:
    return STATUS_TEXT.get(status, "Desconhecido")


def search_products(products: Iterable[Dict[str, Any]], query: Optional[str]) -> List[Dict[str, Any]]:
    """Filtra produtos cujo texto (nome, código, categoria, descrição) contém todos os termos."""
    products = list(products)
    if not query or not query.strip():
        return products
    termos = query.lower().split()
    out = []
    for p in products:
        texto = " ".join(str(p.get(c) or "") for c in ("name", "code", "category", "description")).lower()
        if all(t in texto for t in termos):
            out.append(p)
    return out


def stock_value(products: Iterable[Dict[str, Any]]) -> float:
    """Soma ``quantity * price`` de todos os produtos."""
    total = 0.0
    for p in products:
        try:
            total += float(p.get("quantity") or 0) * float(p.get("price") or 0)
        except (TypeError, ValueError):
            continue
    return total
