import json

import pytest

from stockmaster.config import BACKUP_KEY, DEFAULT_CATEGORIES
from stockmaster.infra.backup import BackupManager


def _popular(manager: BackupManager):
    manager.categorias.add({"name": "Burger e Otakus"})
    p = manager.produtos.add({"code": "PB01", "name": "Pão", "category": "Burger e Otakus", "quantity": 5})
    manager.movimentos.add({"productId": p["id"], "type": "entrada", "quantity": 5})
    manager.configuracoes.save("general", {"companyName": "Canela Fina", "lowStockThreshold": 3, "currency": "BRL"})
    return p


def test_export_data(manager):
    p = _popular(manager)
    data = manager.export_data()
    assert set(data) == {"products", "movements", "categories", "settings", "exportDate"}
    assert data["products"][0]["id"] == p["id"]
    assert data["settings"]["companyName"] == "Canela Fina"


def test_import_substitui_tudo_preservando_ids_e_datas(manager):
    _popular(manager)
    doc = {
        "products": [
            {"id": 7, "code": "SS01", "name": "Salsicha", "category": "Dogão do Canela Fina",
             "quantity": 2, "createdAt": "2024-01-01T00:00:00+00:00", "updatedAt": "2024-01-02T00:00:00+00:00"},
        ],
        "movements": [{"id": "m1", "productId": 7, "type": "entrada", "quantity": 2, "date": "2024-01-01T00:00:00+00:00"}],
        "categories": [{"id": "c1", "name": "Dogão do Canela Fina"}],
    }
    assert manager.import_data(doc) is True

    produtos = manager.produtos.get_all()
    assert [p["code"] for p in produtos] == ["SS01"]
    assert produtos[0]["id"] == 7
    assert produtos[0]["updatedAt"] == "2024-01-02T00:00:00+00:00"
    assert manager.movimentos.get_all()[0]["date"] == "2024-01-01T00:00:00+00:00"
    assert [c["name"] for c in manager.categorias.get_all()] == ["Dogão do Canela Fina"]
    # sem "settings" no documento: configurações limpas
    assert manager.configuracoes.get("general") is None


def test_import_falho_nao_altera_estado(manager):
    p = _popular(manager)
    antes = manager.export_data()
    doc = {"products": [{"code": "A", "name": "ok", "category": "c"}, {"name": "sem código"}]}
    assert manager.import_data(doc) is False
    depois = manager.export_data()
    assert depois["products"] == antes["products"]
    assert depois["movements"] == antes["movements"]
    assert manager.produtos.get_by_id(p["id"]) is not None


@pytest.mark.parametrize("doc", [None, [], "texto"])
def test_import_rejeita_documento_que_nao_e_objeto(manager, doc):
    assert manager.import_data(doc) is False


def test_anel_de_backups_limitado(manager):
    _popular(manager)
    criados = []
    for i in range(5):
        manager.produtos.update(manager.produtos.get_all()[0]["id"], {"quantity": i})
        criados.append(manager.create_backup())
    backups = manager.get_backups()
    assert len(backups) == 3
    assert [b["timestamp"] for b in backups] == [c["timestamp"] for c in criados[-3:]]
    assert backups[-1]["data"]["products"][0]["quantity"] == 4


def test_verify_backup(manager):
    _popular(manager)
    snapshot = manager.create_backup()
    assert manager.verify_backup(snapshot)
    adulterado = json.loads(json.dumps(snapshot))
    adulterado["data"]["products"][0]["quantity"] = 999
    assert not manager.verify_backup(adulterado)
    assert not manager.verify_backup({"checksum": "1"})
    assert not manager.verify_backup("lixo")


def test_recover_sem_backups(manager):
    assert manager.get_backups() == []
    assert manager.recover_from_backup() is False


def test_recover_pula_backup_invalido(manager, store):
    p = _popular(manager)
    manager.create_backup()
    manager.produtos.update(p["id"], {"quantity": 50})
    manager.create_backup()

    backups = manager.get_backups()
    backups[-1]["checksum"] = "0"
    store.set(BACKUP_KEY, json.dumps(backups))
    manager.produtos.update(p["id"], {"quantity": 99})

    assert manager.recover_from_backup() is True
    assert manager.produtos.get_by_id(p["id"])["quantity"] == 5


def test_backup_recusado_com_colecao_ilegivel(manager, store):
    _popular(manager)
    store.set("movements", "{quebrado")
    assert manager.unreadable_collections().keys() == {"movements"}
    assert manager.create_backup() is None
    assert manager.get_backups() == []


def test_validate_ok(manager):
    _popular(manager)
    assert manager.validate_and_recover_data() == {"status": "ok", "orphans_removed": 0, "reason": None}


def test_validate_remove_orfas(manager):
    p = _popular(manager)
    manager.movimentos.add({"productId": "fantasma", "type": "saida", "quantity": 1})
    report = manager.validate_and_recover_data()
    assert report["status"] == "orphans_removed"
    assert report["orphans_removed"] == 1
    assert [m["productId"] for m in manager.movimentos.get_all()] == [p["id"]]


def test_validate_recupera_de_corrupcao(manager, store):
    p = _popular(manager)
    manager.create_backup()
    store.set("products", '{"x": 1}')

    report = manager.validate_and_recover_data()
    assert report["status"] == "recovered"
    assert "products" in report["reason"]
    assert manager.produtos.get_by_id(p["id"])["code"] == "PB01"


def test_validate_registros_invalidos_sem_backup(manager, store):
    store.set("products", json.dumps([{"name": "sem id nem código"}]))
    report = manager.validate_and_recover_data()
    assert report["status"] == "recovery_failed"
    assert report["reason"]


def test_check_integrity(manager, store):
    _popular(manager)
    assert manager.check_integrity() is True
    manager.create_backup()
    store.set("categories", "nao json")
    assert manager.check_integrity() is True
    assert manager.categorias.read().ok


def test_seed_default_categories(manager):
    assert manager.seed_default_categories() == len(DEFAULT_CATEGORIES)
    assert manager.seed_default_categories() == 0
    assert [c["name"] for c in manager.categorias.get_all()] == [c["name"] for c in DEFAULT_CATEGORIES]


def test_clear_all_data(manager):
    _popular(manager)
    manager.clear_all_data()
    assert manager.produtos.get_all() == []
    assert manager.movimentos.get_all() == []
    assert manager.configuracoes.get_all() == {}
    assert [c["name"] for c in manager.categorias.get_all()] == [c["name"] for c in DEFAULT_CATEGORIES]
    backups = manager.get_backups()
    assert len(backups) == 1
    assert backups[0]["data"]["products"][0]["code"] == "PB01"


def test_import_com_inteiro_enorme_retorna_false(manager):
    p = _popular(manager)
    doc = {"products": [{"code": "A1", "name": "Widget", "category": "Tools", "quantity": 10 ** 400}]}
    assert manager.import_data(doc) is False
    assert [x["id"] for x in manager.produtos.get_all()] == [p["id"]]


def test_import_erro_inesperado_retorna_false(manager, monkeypatch):
    p = _popular(manager)

    def falha(*args, **kwargs):
        raise OverflowError("int too large to convert to float")

    monkeypatch.setattr(manager.produtos, "add", falha)
    doc = {"products": [{"code": "A1", "name": "Widget", "category": "Tools"}]}
    assert manager.import_data(doc) is False
    assert [x["id"] for x in manager.produtos.get_all()] == [p["id"]]


def test_recover_sem_backup_valido_mantem_estado(manager, store):
    p = _popular(manager)
    manager.create_backup()
    manager.produtos.update(p["id"], {"quantity": 50})
    manager.create_backup()

    backups = manager.get_backups()
    for snapshot in backups:
        snapshot["checksum"] = "adulterado"
    store.set(BACKUP_KEY, json.dumps(backups))
    manager.produtos.update(p["id"], {"quantity": 77, "name": "Pão brioche"})
    antes = manager.export_data()

    assert manager.recover_from_backup() is False
    depois = manager.export_data()
    assert depois["products"] == antes["products"]
    assert depois["movements"] == antes["movements"]
    assert depois["categories"] == antes["categories"]
    assert manager.produtos.get_by_id(p["id"])["quantity"] == 77
