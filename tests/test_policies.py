import pytest

from stockmaster.domain.errors import ValidationError
from stockmaster.domain.policies import (
    movement_type,
    non_negative_decimal,
    non_negative_int,
    positive_int,
    require_fields,
    search_products,
    stock_status,
    stock_status_text,
    stock_value,
)


@pytest.mark.parametrize(
    "quantidade, minimo, status",
    [(0, 10, "out"), (5, 10, "low"), (10, 10, "low"), (11, 10, "normal"), (None, None, "out"), (3, None, "low")],
)
def test_stock_status(quantidade, minimo, status):
    assert stock_status(quantidade, minimo) == status


def test_stock_status_text():
    assert stock_status_text("low") == "Baixo"
    assert stock_status_text("xyz") == "Desconhecido"


def test_require_fields_lista_todos_os_ausentes():
    with pytest.raises(ValidationError) as exc:
        require_fields({"name": "  ", "code": "A1"}, ("name", "code", "category"), "produto")
    assert "name" in str(exc.value)
    assert "category" in str(exc.value)
    assert "code" not in str(exc.value).split(":")[-1]


def test_numeros_normalizados():
    assert non_negative_int("7", "quantity") == 7
    assert non_negative_int(None, "minStock", default=10) == 10
    assert non_negative_decimal("R$ 10,50", "price") == pytest.approx(10.5)
    assert positive_int("3", "quantity") == 3


@pytest.mark.parametrize(
    "func, valor",
    [
        (non_negative_int, "-1"),
        (non_negative_int, "1.5"),
        (non_negative_int, "abc"),
        (non_negative_decimal, "-0,01"),
        (positive_int, "0"),
    ],
)
def test_numeros_invalidos(func, valor):
    with pytest.raises(ValidationError):
        func(valor, "campo")


def test_movement_type():
    assert movement_type(" Entrada ") == "entrada"
    with pytest.raises(ValidationError):
        movement_type("ajuste")


def test_search_products_exige_todos_os_termos():
    produtos = [
        {"name": "Pão de hambúrguer", "code": "PB01", "category": "Burger e Otakus"},
        {"name": "Salsicha", "code": "SS01", "category": "Dogão do Canela Fina", "description": "pacote 1kg"},
    ]
    assert search_products(produtos, None) == produtos
    assert [p["code"] for p in search_products(produtos, "pão burger")] == ["PB01"]
    assert [p["code"] for p in search_products(produtos, "PACOTE")] == ["SS01"]
    assert search_products(produtos, "pão salsicha") == []


def test_stock_value():
    assert stock_value([{"quantity": 2, "price": 1.5}, {"quantity": 3, "price": None}, {}]) == pytest.approx(3.0)


@pytest.mark.parametrize("valor", [10 ** 400, 2 ** 63])
def test_inteiro_acima_do_limite(valor):
    with pytest.raises(ValidationError):
        non_negative_int(valor, "quantity")


@pytest.mark.parametrize("valor", [10 ** 400, float("inf"), float("nan")])
def test_decimal_nao_finito(valor):
    with pytest.raises(ValidationError):
        non_negative_decimal(valor, "price")
