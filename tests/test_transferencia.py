import json

import pytest

from stockmaster.domain.errors import ValidationError
from stockmaster.infra.database import StockDatabase
from stockmaster.usecases.transferencia import exportar_json, importar_json


def test_exportar_e_importar(db, tmp_path):
    p = db.add_product({"code": "PB01", "name": "Pão", "category": "Burger e Otakus", "quantity": 2})
    db.add_movement({"productId": p["id"], "type": "entrada", "quantity": 2})
    arquivo = tmp_path / "dados.json"

    info = exportar_json(db, str(arquivo))
    assert info["produtos"] == 1
    assert info["movimentacoes"] == 1
    assert info["categorias"] == 2

    outro = StockDatabase.open(str(tmp_path / "outro.db"))
    res = importar_json(outro, str(arquivo))
    assert res["sucesso"] is True
    assert outro.get_products() == db.get_products()
    assert outro.get_movements() == db.get_movements()
    assert [c["id"] for c in outro.get_categories()] == [c["id"] for c in db.get_categories()]
    outro.close()


def test_importar_documento_invalido_mantem_estado(db, tmp_path):
    p = db.add_product({"code": "PB01", "name": "Pão", "category": "Burger e Otakus"})
    arquivo = tmp_path / "ruim.json"
    arquivo.write_text(json.dumps({"products": [{"name": "sem código"}]}), encoding="utf-8")

    res = importar_json(db, str(arquivo))
    assert res["sucesso"] is False
    assert [x["id"] for x in db.get_products()] == [p["id"]]


@pytest.mark.parametrize("conteudo", ["{quebrado", "[1, 2]"])
def test_importar_formato_invalido(db, tmp_path, conteudo):
    arquivo = tmp_path / "ruim.json"
    arquivo.write_text(conteudo, encoding="utf-8")
    with pytest.raises(ValidationError):
        importar_json(db, str(arquivo))


def test_importar_arquivo_inexistente(db, tmp_path):
    with pytest.raises(ValidationError, match="Não foi possível ler"):
        importar_json(db, str(tmp_path / "nao_existe.json"))
