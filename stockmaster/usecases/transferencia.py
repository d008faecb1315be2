"""
UC: Exportar / importar o estado completo em arquivo JSON.

- exportar_json(db, path): grava o documento de intercâmbio
  ``{products, movements, categories, settings, exportDate}``.
- importar_json(db, path): lê o documento e substitui todo o estado.

Obs.:
- A importação roda numa transação: se falhar, nada muda.
- Documentos que não são um objeto JSON são rejeitados com ValidationError.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from stockmaster.domain.errors import ValidationError
from stockmaster.infra.database import StockDatabase
from stockmaster.infra.logger import log_file_operation, log_system_event, log_transaction


def exportar_json(db: StockDatabase, path: str) -> Dict[str, Any]:
    data = db.export_data()
    destino = Path(path)
    destino.parent.mkdir(parents=True, exist_ok=True)
    destino.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    total = len(data["products"]) + len(data["movements"]) + len(data["categories"])
    log_file_operation("export", str(destino), rows_processed=total)
    return {
        "arquivo": str(destino),
        "produtos": len(data["products"]),
        "movimentacoes": len(data["movements"]),
        "categorias": len(data["categories"]),
    }


def importar_json(db: StockDatabase, path: str) -> Dict[str, Any]:
    log_file_operation("import", path)
    try:
        conteudo = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        log_system_event("import_error", {"file_path": path, "error": str(e)}, level="error")
        raise ValidationError(f"Não foi possível ler o arquivo: {path}") from e
    try:
        data = json.loads(conteudo)
    except ValueError as e:
        log_system_event("import_error", {"file_path": path, "error": str(e)}, level="error")
        raise ValidationError(f"Formato de arquivo inválido: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("Formato de arquivo inválido: esperado um objeto JSON")

    ok = db.import_data(data)
    result = {
        "arquivo": path,
        "sucesso": ok,
        "produtos": len(data.get("products") or []),
        "movimentacoes": len(data.get("movements") or []),
        "categorias": len(data.get("categories") or []),
    }
    if ok:
        log_file_operation("import", path, rows_processed=result["produtos"] + result["movimentacoes"] + result["categorias"])
        log_transaction("importar_json", {"file": path}, result=result)
    else:
        log_transaction("importar_json", {"file": path}, error="importação falhou")
    return result
