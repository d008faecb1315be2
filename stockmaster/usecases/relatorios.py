# stockmaster/usecases/relatorios.py
"""
Relatórios e consolidação do dashboard:
- resumo do dashboard (totais, valor, estoque baixo, categorias)
- relatório de estoque (esgotados, estoque baixo, totais por categoria)
- relatório de movimentações (janela de dias)
- documento de relatório completo (exportável em JSON)

Limite de estoque baixo por produto: ``minStock`` do produto; na falta,
``lowStockThreshold`` das configurações gerais; na falta, 10.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from stockmaster.config import DEFAULTS
from stockmaster.domain.policies import stock_status, stock_value
from stockmaster.infra.database import StockDatabase
from stockmaster.infra.logger import log_system_event
from stockmaster.infra.repositories import now_iso, same_id


# ----------------------
# util
# ----------------------

def _default_threshold(db: StockDatabase) -> int:
    general = db.get_setting() or {}
    try:
        return int(general.get("lowStockThreshold") or DEFAULTS.low_stock_threshold)
    except (TypeError, ValueError, AttributeError):
        return DEFAULTS.low_stock_threshold


def _products_frame(products: List[Dict[str, Any]], threshold: int) -> pd.DataFrame:
    df = pd.DataFrame(products)
    for col in ("name", "code", "category", "quantity", "price"):
        if col not in df.columns:
            df[col] = None
    df["quantity"] = pd.to_numeric(df["quantity"], errors="coerce").fillna(0)
    df["price"] = pd.to_numeric(df["price"], errors="coerce").fillna(0.0)
    if "minStock" in df.columns:
        df["minStock"] = pd.to_numeric(df["minStock"], errors="coerce").fillna(threshold)
    else:
        df["minStock"] = threshold
    df["value"] = df["quantity"] * df["price"]
    df["status"] = [stock_status(q, m) for q, m in zip(df["quantity"], df["minStock"])]
    return df


def _parse_date(value: Any) -> Optional[datetime]:
    try:
        d = datetime.fromisoformat(str(value))
    except (TypeError, ValueError):
        return None
    return d if d.tzinfo else d.replace(tzinfo=timezone.utc)


# ----------------------
# 1) Dashboard
# ----------------------

def resumo_dashboard(db: StockDatabase) -> Dict[str, Any]:
    products = db.get_products()
    threshold = _default_threshold(db)
    low = [
        p for p in products
        if stock_status(p.get("quantity"), p.get("minStock") if p.get("minStock") is not None else threshold) == "low"
    ]
    return {
        "total_produtos": len(products),
        "valor_total": stock_value(products),
        "estoque_baixo": len(low),
        "categorias": len({p.get("category") for p in products}),
    }


# ----------------------
# 2) Estoque
# ----------------------

def relatorio_estoque(db: StockDatabase, limite_lista: int = 10) -> Dict[str, Any]:
    """Totais gerais, produtos em estoque baixo/esgotados e consolidação por categoria."""
    products = db.get_products()
    log_system_event("relatorio_estoque_start", {"produtos": len(products)})

    if not products:
        return {
            "total_produtos": 0,
            "valor_total": 0.0,
            "estoque_baixo": [],
            "total_estoque_baixo": 0,
            "esgotados": [],
            "total_esgotados": 0,
            "por_categoria": [],
        }

    df = _products_frame(products, _default_threshold(db))

    por_categoria = (
        df.groupby("category", dropna=False)
        .agg(produtos=("code", "size"), quantidade=("quantity", "sum"), valor=("value", "sum"))
        .reset_index()
        .rename(columns={"category": "categoria"})
        .sort_values(["valor", "categoria"], ascending=[False, True])
    )

    def _rows(frame: pd.DataFrame) -> List[Dict[str, Any]]:
        return [
            {"name": r["name"], "code": r["code"], "category": r["category"], "quantity": int(r["quantity"])}
            for _, r in frame.head(limite_lista).iterrows()
        ]

    low = df[df["status"] == "low"].sort_values("quantity")
    out = df[df["status"] == "out"]

    return {
        "total_produtos": int(len(df)),
        "valor_total": float(df["value"].sum()),
        "estoque_baixo": _rows(low),
        "total_estoque_baixo": int(len(low)),
        "esgotados": _rows(out),
        "total_esgotados": int(len(out)),
        "por_categoria": [
            {
                "categoria": r["categoria"],
                "produtos": int(r["produtos"]),
                "quantidade": int(r["quantidade"]),
                "valor": float(r["valor"]),
            }
            for _, r in por_categoria.iterrows()
        ],
    }


# ----------------------
# 3) Movimentações
# ----------------------

def relatorio_movimentacoes(
    db: StockDatabase,
    dias: int = 30,
    agora: Optional[datetime] = None,
    limite_lista: int = 10,
) -> Dict[str, Any]:
    """Movimentações dos últimos ``dias`` dias, mais recentes primeiro."""
    agora = agora or datetime.now(timezone.utc)
    inicio = agora - timedelta(days=dias)
    products = db.get_products()

    recentes = []
    for m in db.get_movements():
        d = _parse_date(m.get("date"))
        if d is not None and inicio <= d <= agora:
            recentes.append((d, m))
    recentes.sort(key=lambda item: item[0], reverse=True)

    def _product_name(product_id: Any) -> str:
        for p in products:
            if same_id(p.get("id"), product_id):
                return p.get("name") or "N/A"
        return "N/A"

    return {
        "dias": dias,
        "total": len(recentes),
        "entradas": sum(1 for _, m in recentes if m.get("type") == "entrada"),
        "saidas": sum(1 for _, m in recentes if m.get("type") == "saida"),
        "recentes": [
            {
                "produto": _product_name(m.get("productId")),
                "type": m.get("type"),
                "quantity": m.get("quantity"),
                "reason": m.get("reason", ""),
                "date": m.get("date"),
            }
            for _, m in recentes[:limite_lista]
        ],
    }


# ----------------------
# 4) Documento completo
# ----------------------

def gerar_relatorio(db: StockDatabase) -> Dict[str, Any]:
    products = db.get_products()
    threshold = _default_threshold(db)
    statuses = [
        stock_status(p.get("quantity"), p.get("minStock") if p.get("minStock") is not None else threshold)
        for p in products
    ]
    return {
        "products": products,
        "movements": db.get_movements(),
        "summary": {
            "totalProducts": len(products),
            "totalValue": stock_value(products),
            "lowStockCount": statuses.count("low"),
            "outOfStockCount": statuses.count("out"),
        },
        "generatedAt": now_iso(),
    }
