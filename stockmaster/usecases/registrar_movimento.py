"""
UC: Registrar MOVIMENTAÇÃO (entrada/saída) de um produto.

A movimentação e a nova quantidade do produto são gravadas na mesma
transação do armazenamento: ou as duas persistem, ou nenhuma.

Obs.:
- 'saida' que deixaria o estoque negativo é rejeitada.
- O backup automático disparado pelas gravações só roda após o commit.
"""

from __future__ import annotations

from typing import Any, Dict

from stockmaster.domain import policies
from stockmaster.domain.errors import NotFoundError, StockError, ValidationError
from stockmaster.infra.database import StockDatabase
from stockmaster.infra.logger import log_system_event, log_transaction


def registrar_movimento(
    db: StockDatabase,
    product_id: Any,
    tipo: str,
    quantidade: Any,
    motivo: str = "",
) -> Dict[str, Any]:
    """Registra uma movimentação e atualiza o estoque do produto.

    Returns:
        ``{"movimento": <registro>, "produto": <produto atualizado>,
        "quantidade_anterior": int, "quantidade_atual": int}``

    Raises:
        NotFoundError: produto inexistente.
        ValidationError: tipo/quantidade inválidos ou estoque insuficiente.
    """
    dados = {"productId": product_id, "type": tipo, "quantity": quantidade, "reason": motivo}
    log_system_event("registrar_movimento_start", dados)

    try:
        tipo = policies.movement_type(tipo)
        qtd = policies.positive_int(quantidade, "quantity")

        with db.store.transaction():
            produto = db.produtos.get_by_id(product_id)
            if produto is None:
                raise NotFoundError(f"Produto não encontrado: {product_id}")

            anterior = int(produto.get("quantity") or 0)
            atual = anterior + qtd if tipo == "entrada" else anterior - qtd
            if atual < 0:
                raise ValidationError("Quantidade insuficiente em estoque")

            movimento = db.movimentos.add(
                {"productId": produto["id"], "type": tipo, "quantity": qtd, "reason": motivo}
            )
            produto = db.produtos.update(produto["id"], {"quantity": atual})
    except StockError as e:
        log_transaction("registrar_movimento", dados, error=str(e))
        raise

    result = {
        "movimento": movimento,
        "produto": produto,
        "quantidade_anterior": anterior,
        "quantidade_atual": atual,
    }
    log_transaction("registrar_movimento", dados, result={"id": movimento["id"], "quantidade_atual": atual})
    return result
