"""
Sistema de logging do StockMaster.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: transações de estoque, gravações no armazenamento,
ciclo de vida dos backups e eventos do sistema (validação, recuperação,
timers). Cada logger grava no seu próprio arquivo dentro de ``LOGS_DIR``;
os arquivos só são criados quando o primeiro registro é emitido.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.getenv("STOCKMASTER_LOGGING", "0") == "1"
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = False


def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Diretório base para logs
LOGS_DIR = Path(os.getenv("STOCKMASTER_LOG_DIR", Path.cwd() / "logs"))

LOG_FILES = {
    "transactions": "transactions.log",
    "database": "database.log",
    "backup": "backup.log",
    "system": "system.log",
}


class _LazyFileHandler(logging.FileHandler):
    """FileHandler que cria o diretório do arquivo apenas ao abrir."""

    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers anteriores (ex.: reconfiguração para outro diretório)
    while logger.handlers:
        handler = logger.handlers[0]
        logger.removeHandler(handler)
        handler.close()

    file_handler = _LazyFileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


def configure_logging(logs_dir: Optional[Path] = None, enable: bool = True) -> None:
    """(Re)configura todos os loggers para gravar em ``logs_dir``."""
    global LOGS_DIR, ENABLE_LOGGING, transaction_logger, database_logger, backup_logger, system_logger
    if logs_dir is not None:
        LOGS_DIR = Path(logs_dir)
    ENABLE_LOGGING = enable
    transaction_logger = setup_logger('stockmaster.transactions', str(LOGS_DIR / LOG_FILES["transactions"]))
    database_logger = setup_logger('stockmaster.database', str(LOGS_DIR / LOG_FILES["database"]))
    backup_logger = setup_logger('stockmaster.backup', str(LOGS_DIR / LOG_FILES["backup"]))
    system_logger = setup_logger('stockmaster.system', str(LOGS_DIR / LOG_FILES["system"]))


# Loggers específicos para cada operação
transaction_logger = setup_logger('stockmaster.transactions', str(LOGS_DIR / LOG_FILES["transactions"]))
database_logger = setup_logger('stockmaster.database', str(LOGS_DIR / LOG_FILES["database"]))
backup_logger = setup_logger('stockmaster.backup', str(LOGS_DIR / LOG_FILES["backup"]))
system_logger = setup_logger('stockmaster.system', str(LOGS_DIR / LOG_FILES["system"]))


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (add_product, registrar_movimento, etc.)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_database_operation(key: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para gravações no armazenamento chave/valor.

    Args:
        key: Chave da coleção (products, movements, ...)
        operation: Operação (ADD, UPDATE, DELETE, CLEAR, SET, REMOVE)
        affected_rows: Número de registros afetados
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "key": key,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs
    }
    database_logger.info(f"DB_{operation}: {log_data}")


def log_backup_event(event: str, level: str = "info", **kwargs) -> None:
    """
    Log do ciclo de vida dos backups (criação, verificação, restauração).

    Args:
        event: Nome do evento (created, verified, restored, skipped, ...)
        level: Nível do log (info, warning, error)
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_method = getattr(backup_logger, level.lower(), backup_logger.info)
    log_method(f"BACKUP_{event.upper()}: {kwargs}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para operações de arquivo (importação/exportação).

    Args:
        operation: Tipo de operação (import, export)
        file_path: Caminho do arquivo
        rows_processed: Número de registros processados
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        "at": datetime.now().isoformat(),
        **kwargs
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, database, backup, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string (None com logging desabilitado)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return None

    file_name = LOG_FILES.get(log_type)
    if not file_name:
        return f"Log {log_type} não encontrado."
    log_file = LOGS_DIR / file_name
    if not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines
            return ''.join(recent_lines)
    except OSError as e:
        return f"Erro ao ler log {log_type}: {str(e)}"
