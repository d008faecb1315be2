from pathlib import Path

import pytest

from stockmaster.infra.backup import BackupManager
from stockmaster.infra.database import StockDatabase
from stockmaster.infra.migrations import apply_migrations
from stockmaster.infra.repositories import CategoriaRepo, ConfiguracaoRepo, MovimentoRepo, ProdutoRepo
from stockmaster.infra.storage import KeyValueStore, RetryPolicy


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "stockmaster_test.db")


@pytest.fixture
def store(db_path) -> KeyValueStore:
    apply_migrations(db_path)
    return KeyValueStore(db_path, RetryPolicy(max_attempts=2, delay_s=0))


@pytest.fixture
def manager(store) -> BackupManager:
    """BackupManager sem backup automático (repositórios sem hook de mutação)."""
    return BackupManager(
        store,
        ProdutoRepo(store),
        MovimentoRepo(store),
        CategoriaRepo(store),
        ConfiguracaoRepo(store),
        max_backups=3,
    )


@pytest.fixture
def db(db_path):
    database = StockDatabase.open(db_path)
    yield database
    database.close()
