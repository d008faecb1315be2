# stockmaster/config.py
"""
Configurações globais e valores padrão do StockMaster.
"""

import os
from dataclasses import dataclass


# Caminho padrão do arquivo SQLite que guarda o armazenamento chave/valor
STORE_PATH = os.getenv("STOCKMASTER_DB", os.path.join(os.getcwd(), "stockmaster.db"))

# Chaves fixas do armazenamento
PRODUCTS_KEY = "products"
MOVEMENTS_KEY = "movements"
CATEGORIES_KEY = "categories"
SETTINGS_KEY = "settings"
BACKUP_KEY = "stockmaster_backups"

STORAGE_KEYS = (PRODUCTS_KEY, MOVEMENTS_KEY, CATEGORIES_KEY, SETTINGS_KEY)

# Grupo de configurações efetivamente usado
GENERAL_SETTINGS = "general"


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    max_backups: int = 10
    backup_interval_s: float = 300.0          # backup periódico (5 min)
    initial_backup_delay_s: float = 2.0       # backup logo após iniciar
    integrity_check_interval_s: float = 30.0
    deep_validation_interval_s: float = 300.0
    change_poll_interval_s: float = 5.0       # mudanças feitas por outro processo
    save_debounce_s: float = 1.0
    retry_max_attempts: int = 3
    retry_delay_s: float = 1.0
    retry_backoff: float = 1.0                # 1.0 = atraso fixo
    min_stock: int = 10
    low_stock_threshold: int = 10
    company_name: str = ""
    currency: str = "BRL"


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()


# Categorias criadas quando o armazenamento está vazio
DEFAULT_CATEGORIES = [
    {"name": "Burger e Otakus", "description": "Produtos relacionados a hambúrgueres e cultura otaku"},
    {"name": "Dogão do Canela Fina", "description": "Hot dogs e produtos especiais do Canela Fina"},
]
