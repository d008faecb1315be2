import pytest

from stockmaster.domain.errors import NotFoundError, StorageFailure, ValidationError
from stockmaster.usecases.registrar_movimento import registrar_movimento


@pytest.fixture
def produto(db):
    return db.add_product({"code": "PB01", "name": "Pão", "category": "Burger e Otakus", "quantity": 10})


def test_entrada_e_saida(db, produto):
    res = registrar_movimento(db, produto["id"], "entrada", "5", "Compra")
    assert res["quantidade_anterior"] == 10
    assert res["quantidade_atual"] == 15
    assert res["movimento"]["reason"] == "Compra"

    res = registrar_movimento(db, produto["id"], "saida", 15)
    assert res["quantidade_atual"] == 0
    assert db.get_product(produto["id"])["quantity"] == 0
    assert [m["type"] for m in db.get_movements(produto["id"])] == ["entrada", "saida"]


def test_saida_maior_que_estoque(db, produto):
    with pytest.raises(ValidationError, match="Quantidade insuficiente"):
        registrar_movimento(db, produto["id"], "saida", 11)
    assert db.get_product(produto["id"])["quantity"] == 10
    assert db.get_movements() == []


def test_produto_inexistente(db):
    with pytest.raises(NotFoundError):
        registrar_movimento(db, "nao-existe", "entrada", 1)
    assert db.get_movements() == []


@pytest.mark.parametrize("tipo, quantidade", [("ajuste", 1), ("entrada", 0), ("entrada", "-2"), ("saida", "abc")])
def test_parametros_invalidos(db, produto, tipo, quantidade):
    with pytest.raises(ValidationError):
        registrar_movimento(db, produto["id"], tipo, quantidade)
    assert db.get_movements() == []


def test_movimento_e_quantidade_sao_atomicos(db, produto, monkeypatch):
    def falha(*args, **kwargs):
        raise StorageFailure("disco cheio")

    monkeypatch.setattr(db.produtos, "update", falha)
    with pytest.raises(StorageFailure):
        registrar_movimento(db, produto["id"], "entrada", 3)
    assert db.get_movements() == []
    assert db.get_product(produto["id"])["quantity"] == 10
