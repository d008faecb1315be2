import asyncio

from stockmaster.config import DEFAULT_CATEGORIES, DefaultConfig
from stockmaster.infra.database import StockDatabase
from stockmaster.usecases.registrar_movimento import registrar_movimento


def _produto(code="PB01", **kw):
    return {"code": code, "name": "Pão", "category": "Burger e Otakus", **kw}


def test_open_cria_categorias_padrao(db):
    assert [c["name"] for c in db.get_categories()] == [c["name"] for c in DEFAULT_CATEGORIES]


def test_reabrir_nao_duplica_categorias(db, db_path):
    outro = StockDatabase.open(db_path)
    outro.close()
    assert len(db.get_categories()) == len(DEFAULT_CATEGORIES)


def test_fachada_crud(db):
    p = db.add_product(_produto(quantity=3))
    assert db.get_products() == [p]
    assert db.update_product(p["id"], {"price": "2,50"})["price"] == 2.5
    m = db.add_movement({"productId": p["id"], "type": "entrada", "quantity": 1})
    assert db.get_movements(p["id"]) == [m]
    assert db.delete_movement(m["id"]) is True
    assert db.delete_product(p["id"]) is True
    assert db.get_product(p["id"]) is None

    cat = db.add_category({"name": "Bebidas"})
    assert db.add_category({"name": "Bebidas"}) is None
    assert db.delete_category(cat["id"]) is True

    db.save_setting("general", {"companyName": "Canela Fina"})
    assert db.get_setting()["companyName"] == "Canela Fina"


def test_backup_automatico_apos_mutacao(db):
    p = db.add_product(_produto())
    db.close()
    ultimo = db.get_backups()[-1]
    assert db.backup.verify_backup(ultimo)
    assert [x["id"] for x in ultimo["data"]["products"]] == [p["id"]]


def test_backup_automatico_so_apos_commit(db, monkeypatch):
    p = db.add_product(_produto(quantity=1))
    db.close()

    estados = []
    original = db.backup.create_backup

    def espiao():
        estados.append(db.store.in_transaction)
        return original()

    monkeypatch.setattr(db.backup, "create_backup", espiao)
    registrar_movimento(db, p["id"], "entrada", 2)
    db.close()
    assert estados and not any(estados)
    assert db.get_backups()[-1]["data"]["products"][0]["quantity"] == 3


def test_force_save(db):
    db.add_product(_produto())
    snapshot = db.force_save()
    assert snapshot is not None
    assert db.save_queue.pending == 0


def test_recupera_colecao_corrompida(db):
    p = db.add_product(_produto())
    db.force_save()
    db.store.set("products", '{"x": 1}')

    assert db.get_products() == []
    report = db.validate_and_recover_data()
    assert report["status"] == "recovered"
    assert db.get_product(p["id"])["code"] == "PB01"


def test_mudancas_externas(db, db_path):
    avisos = []
    db.subscribe(avisos.append)
    assert db.poll_external_changes() == []

    outro = StockDatabase.open(db_path)
    outro.add_product(_produto())
    outro.close()

    assert db.poll_external_changes() == ["products"]
    assert avisos == ["products"]
    assert db.poll_external_changes() == []

    # gravações próprias não contam como externas
    db.add_product(_produto(code="PB02"))
    assert db.poll_external_changes() == []


def _timers_rapidos():
    async def cenario(db):
        db.start()
        tasks = list(db._tasks)
        assert db.start() == tasks
        await asyncio.sleep(0.2)
        snapshot = await db.destroy()
        return tasks, snapshot

    config = DefaultConfig(
        initial_backup_delay_s=0.01,
        backup_interval_s=0.05,
        integrity_check_interval_s=0.05,
        deep_validation_interval_s=0.05,
        change_poll_interval_s=0.05,
    )
    return config, cenario


def test_timers_executam_e_param(db_path):
    config, cenario = _timers_rapidos()
    db = StockDatabase.open(db_path, config=config)
    tasks, snapshot = asyncio.run(cenario(db))
    assert len(tasks) == 5
    assert all(t.done() for t in tasks)
    assert db._tasks == []
    assert snapshot is not None
    assert len(db.get_backups()) >= 3


def test_timer_com_erro_continua(db):
    chamadas = []

    def boom():
        chamadas.append(1)
        raise RuntimeError("falhou")

    async def cenario():
        task = asyncio.create_task(db._periodic("teste", 0.01, boom))
        await asyncio.sleep(0.08)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    asyncio.run(cenario())
    assert len(chamadas) >= 2


def test_cenario_widget_saida_e_atualizacao(db):
    p = db.add_product({"name": "Widget", "code": "A1", "category": "Tools", "quantity": 10, "price": 2.5})
    assert p["id"]
    assert db.get_product(p["id"])["quantity"] == 10

    res = registrar_movimento(db, p["id"], "saida", 3)
    assert res["quantidade_atual"] == 7
    movimentos = db.get_movements(p["id"])
    assert [(m["type"], m["quantity"]) for m in movimentos] == [("saida", 3)]
    assert db.get_product(p["id"])["quantity"] == 7

    antes = db.get_product(p["id"])["updatedAt"]
    atualizado = db.update_product(p["id"], {"quantity": 2})
    assert atualizado["quantity"] == 2
    assert atualizado["updatedAt"] > antes
    assert db.get_product(p["id"])["quantity"] == 2
    assert len(db.get_movements(p["id"])) == 1
