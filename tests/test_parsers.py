import pytest

from stockmaster.adapters.parsers import parse_decimal, parse_inteiro


@pytest.mark.parametrize(
    "txt, esperado",
    [
        ("R$ 1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("10,5", 10.5),
        ("12.00", 12.0),
        ("1.000.000", 1000000.0),
        (7, 7.0),
        (2.5, 2.5),
        ("-3", -3.0),
    ],
)
def test_parse_decimal(txt, esperado):
    assert parse_decimal(txt) == pytest.approx(esperado)


@pytest.mark.parametrize("txt", [None, "", "   ", "abc", ".", True])
def test_parse_decimal_invalido(txt):
    assert parse_decimal(txt) is None


@pytest.mark.parametrize(
    "txt, esperado",
    [("5", 5), ("5,0", 5), (12, 12), ("2.5", None), ("x", None), (None, None)],
)
def test_parse_inteiro(txt, esperado):
    assert parse_inteiro(txt) == esperado


def test_parse_inteiro_preserva_inteiros_grandes():
    assert parse_inteiro(2 ** 53 + 1) == 2 ** 53 + 1
    assert parse_inteiro(str(2 ** 53 + 1)) == 2 ** 53 + 1
    assert parse_inteiro(True) is None


def test_parse_decimal_inteiro_fora_do_alcance_do_float():
    assert parse_decimal(10 ** 400) is None
