# stockmaster/adapters/cli.py
"""
CLI do StockMaster (Typer).

Comandos principais:
- init                      -> cria o armazenamento, categorias padrão e valida os dados
- produto add/list/show/update/delete
- movimento registrar/list  -> entrada/saída com atualização atômica do estoque
- categoria add/list/delete
- config set/show           -> configurações gerais (empresa, limite de estoque baixo, moeda)
- backup create/list/recover
- validar                   -> valida os dados e recupera do backup se necessário
- exportar <json> / importar <json>
- limpar                    -> apaga todos os dados (com backup antes)
- dashboard / relatorio     -> consolidação do estoque
- vigiar                    -> executa os timers (backup, integridade, validação)
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from stockmaster.config import DEFAULTS, GENERAL_SETTINGS, STORE_PATH
from stockmaster.domain.errors import StockError
from stockmaster.domain.models import Categoria, ConfiguracaoGeral, Produto
from stockmaster.domain.policies import search_products, stock_status, stock_status_text
from stockmaster.infra.database import StockDatabase
from stockmaster.usecases.registrar_movimento import registrar_movimento
from stockmaster.usecases.relatorios import (
    gerar_relatorio,
    relatorio_estoque,
    relatorio_movimentacoes,
    resumo_dashboard,
)
from stockmaster.usecases.transferencia import exportar_json, importar_json


app = typer.Typer(help="StockMaster — CLI")
console = Console()

DB_OPTION = typer.Option(STORE_PATH, "--db", help="Caminho do arquivo SQLite")


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2))


def _fmt_num(val: Any, casas: int = 2) -> str:
    """Formata número no padrão brasileiro (1.234,56)."""
    return f"{float(val):,.{casas}f}".replace(",", "X").replace(".", ",").replace("X", ".")


def _fmt_moeda(val: Any, moeda: str = DEFAULTS.currency) -> str:
    simbolo = "R$" if moeda == "BRL" else moeda
    return f"{simbolo} {_fmt_num(val)}"


def _fmt_data(valor: Optional[str]) -> str:
    if not valor:
        return ""
    try:
        return datetime.fromisoformat(valor).astimezone().strftime("%d/%m/%Y %H:%M")
    except (TypeError, ValueError):
        return str(valor)


def _display_table(rows: List[Dict[str, Any]], title: str, columns: Optional[List[str]] = None) -> None:
    """Exibe uma lista de dicionários como tabela Rich."""
    if not rows:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return
    columns = columns or list(rows[0].keys())
    table = Table(title=title, box=box.ROUNDED)
    for column in columns:
        if column.lower() in ["quantity", "quantidade", "price", "valor", "produtos", "minstock"]:
            table.add_column(column, justify="right")
        else:
            table.add_column(column)
    for row in rows:
        values = []
        for col in columns:
            val = row.get(col, "")
            if isinstance(val, float):
                values.append(_fmt_num(val))
            elif val is None:
                values.append("")
            else:
                values.append(str(val))
        table.add_row(*values)
    console.print(table)


def _display_record(record: Dict[str, Any], title: str) -> None:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor")
    for chave, valor in record.items():
        table.add_row(chave, "" if valor is None else str(valor))
    console.print(table)


@contextmanager
def _abrir(db_path: str) -> Iterator[StockDatabase]:
    """Abre o banco, converte erros do domínio em saída amigável e drena a fila ao final."""
    db = None
    try:
        db = StockDatabase.open(db_path)
        yield db
    except (StockError, sqlite3.Error) as e:
        console.print(f"[bold red]Erro:[/] {e}")
        raise typer.Exit(code=1)
    finally:
        if db is not None:
            db.close()


# -----------------------
# comandos de infra
# -----------------------

@app.command("init")
def cmd_init(db_path: str = DB_OPTION):
    """Cria o armazenamento, as categorias padrão e valida os dados."""
    db = StockDatabase(db_path)
    report = db.init()
    db.close()
    typer.echo(f">> Armazenamento pronto em: {db_path} (validação: {report['status']})")


@app.command("validar")
def cmd_validar(db_path: str = DB_OPTION):
    """Valida os dados; restaura do backup se houver corrupção."""
    with _abrir(db_path) as db:
        report = db.validate_and_recover_data()
    _display_record(report, "Validação dos Dados")
    if report["status"] == "recovery_failed":
        raise typer.Exit(code=1)


# -----------------------
# produtos
# -----------------------

produto_app = typer.Typer(help="Cadastro de produtos.")
app.add_typer(produto_app, name="produto")


@produto_app.command("add")
def cmd_produto_add(
    code: str = typer.Option(..., "--code", help="Código único do produto"),
    name: str = typer.Option(..., "--name", help="Nome"),
    category: str = typer.Option(..., "--category", help="Categoria"),
    quantity: str = typer.Option("0", help="Quantidade inicial"),
    price: str = typer.Option("0", help="Preço unitário (ex.: 10,50)"),
    min_stock: str = typer.Option(str(DEFAULTS.min_stock), "--min-stock", help="Estoque mínimo"),
    description: Optional[str] = typer.Option(None, help="Descrição"),
    supplier: Optional[str] = typer.Option(None, help="Fornecedor"),
    db_path: str = DB_OPTION,
):
    """Cadastra um produto."""
    produto = Produto(
        code=code,
        name=name,
        category=category,
        quantity=quantity,
        price=price,
        min_stock=min_stock,
        description=description,
        supplier=supplier,
    )
    with _abrir(db_path) as db:
        row = db.add_product(produto)
    typer.echo(f">> Produto cadastrado: {row['id']}")


@produto_app.command("list")
def cmd_produto_list(
    categoria: Optional[str] = typer.Option(None, help="Filtra por categoria"),
    busca: Optional[str] = typer.Option(None, help="Termos de busca"),
    db_path: str = DB_OPTION,
):
    """Lista os produtos com status de estoque."""
    with _abrir(db_path) as db:
        products = db.get_products()
        moeda = (db.get_setting() or {}).get("currency", DEFAULTS.currency)
    if categoria:
        products = [p for p in products if p.get("category") == categoria]
    products = search_products(products, busca)
    rows = [
        {
            "id": p.get("id"),
            "code": p.get("code"),
            "name": p.get("name"),
            "category": p.get("category"),
            "quantity": p.get("quantity"),
            "price": _fmt_moeda(p.get("price") or 0, moeda),
            "status": stock_status_text(stock_status(p.get("quantity"), p.get("minStock"))),
        }
        for p in products
    ]
    _display_table(rows, "Produtos")


@produto_app.command("show")
def cmd_produto_show(product_id: str = typer.Argument(..., help="Id do produto"), db_path: str = DB_OPTION):
    """Mostra um produto e suas movimentações."""
    with _abrir(db_path) as db:
        produto = db.get_product(product_id)
        movimentos = db.get_movements(product_id) if produto else []
    if produto is None:
        typer.echo(f"Produto não encontrado: {product_id}")
        raise typer.Exit(code=1)
    _display_record(produto, f"Produto {produto.get('code')}")
    _display_table(movimentos, "Movimentações", ["date", "type", "quantity", "reason"])


@produto_app.command("update")
def cmd_produto_update(
    product_id: str = typer.Argument(..., help="Id do produto"),
    code: Optional[str] = typer.Option(None, "--code"),
    name: Optional[str] = typer.Option(None, "--name"),
    category: Optional[str] = typer.Option(None, "--category"),
    quantity: Optional[str] = typer.Option(None, "--quantity"),
    price: Optional[str] = typer.Option(None, "--price"),
    min_stock: Optional[str] = typer.Option(None, "--min-stock"),
    description: Optional[str] = typer.Option(None, "--description"),
    supplier: Optional[str] = typer.Option(None, "--supplier"),
    db_path: str = DB_OPTION,
):
    """Atualiza apenas os campos informados."""
    candidatos = {
        "code": code,
        "name": name,
        "category": category,
        "quantity": quantity,
        "price": price,
        "minStock": min_stock,
        "description": description,
        "supplier": supplier,
    }
    updates = {k: v for k, v in candidatos.items() if v is not None}
    if not updates:
        typer.echo("Nada a alterar. Informe pelo menos um campo.")
        raise typer.Exit(code=1)
    with _abrir(db_path) as db:
        db.update_product(product_id, updates)
    typer.echo(">> Produto atualizado.")


@produto_app.command("delete")
def cmd_produto_delete(product_id: str = typer.Argument(..., help="Id do produto"), db_path: str = DB_OPTION):
    """Remove um produto (as movimentações órfãs são limpas na próxima validação)."""
    with _abrir(db_path) as db:
        removed = db.delete_product(product_id)
    typer.echo(">> Produto removido." if removed else "Produto não encontrado (nada removido).")


# -----------------------
# movimentações
# -----------------------

mov_app = typer.Typer(help="Movimentações de estoque (entrada/saida).")
app.add_typer(mov_app, name="movimento")


@mov_app.command("registrar")
def cmd_movimento_registrar(
    product_id: str = typer.Argument(..., help="Id do produto"),
    tipo: str = typer.Argument(..., help="entrada | saida"),
    quantidade: str = typer.Argument(..., help="Quantidade (inteiro > 0)"),
    motivo: str = typer.Option("", "--motivo", help="Motivo da movimentação"),
    db_path: str = DB_OPTION,
):
    """Registra uma movimentação e atualiza o estoque do produto."""
    with _abrir(db_path) as db:
        res = registrar_movimento(db, product_id, tipo, quantidade, motivo)
    typer.echo(
        f">> Movimentação registrada: {res['movimento']['type']} de {res['movimento']['quantity']} "
        f"(estoque {res['quantidade_anterior']} -> {res['quantidade_atual']})"
    )


@mov_app.command("list")
def cmd_movimento_list(
    produto: Optional[str] = typer.Option(None, "--produto", help="Filtra por id do produto"),
    db_path: str = DB_OPTION,
):
    """Lista as movimentações."""
    with _abrir(db_path) as db:
        movimentos = db.get_movements(produto)
    rows = [dict(m, date=_fmt_data(m.get("date"))) for m in movimentos]
    _display_table(rows, "Movimentações", ["id", "productId", "type", "quantity", "reason", "date"])


# -----------------------
# categorias
# -----------------------

cat_app = typer.Typer(help="Categorias de produtos.")
app.add_typer(cat_app, name="categoria")


@cat_app.command("add")
def cmd_categoria_add(
    name: str = typer.Argument(..., help="Nome da categoria"),
    descricao: Optional[str] = typer.Option(None, "--descricao"),
    db_path: str = DB_OPTION,
):
    """Cadastra uma categoria (nomes repetidos são ignorados)."""
    with _abrir(db_path) as db:
        row = db.add_category(Categoria(name=name, description=descricao))
    if row is None:
        typer.echo(f"Categoria já existe: {name}")
        raise typer.Exit(code=1)
    typer.echo(f">> Categoria cadastrada: {row['id']}")


@cat_app.command("list")
def cmd_categoria_list(db_path: str = DB_OPTION):
    """Lista as categorias."""
    with _abrir(db_path) as db:
        categorias = db.get_categories()
    _display_table(categorias, "Categorias", ["id", "name", "description"])


@cat_app.command("delete")
def cmd_categoria_delete(category_id: str = typer.Argument(...), db_path: str = DB_OPTION):
    """Remove uma categoria."""
    with _abrir(db_path) as db:
        removed = db.delete_category(category_id)
    typer.echo(">> Categoria removida." if removed else "Categoria não encontrada (nada removido).")


# -----------------------
# configurações
# -----------------------

config_app = typer.Typer(help="Configurações gerais.")
app.add_typer(config_app, name="config")


@config_app.command("set")
def cmd_config_set(
    empresa: Optional[str] = typer.Option(None, help="Nome da empresa"),
    limite_estoque_baixo: Optional[int] = typer.Option(None, help="Limite padrão de estoque baixo"),
    moeda: Optional[str] = typer.Option(None, help="Moeda (ex.: BRL, USD)"),
    db_path: str = DB_OPTION,
):
    """Define configurações gerais (apenas as informadas são alteradas)."""
    if empresa is None and limite_estoque_baixo is None and moeda is None:
        typer.echo("Nada a alterar. Informe pelo menos uma configuração.")
        raise typer.Exit(code=1)
    with _abrir(db_path) as db:
        atual = db.get_setting(GENERAL_SETTINGS) or {}
        geral = ConfiguracaoGeral(
            company_name=empresa if empresa is not None else atual.get("companyName", DEFAULTS.company_name),
            low_stock_threshold=limite_estoque_baixo if limite_estoque_baixo is not None else atual.get("lowStockThreshold", DEFAULTS.low_stock_threshold),
            currency=moeda if moeda is not None else atual.get("currency", DEFAULTS.currency),
        )
        db.save_setting(GENERAL_SETTINGS, geral)
    typer.echo(">> Configurações atualizadas.")


@config_app.command("show")
def cmd_config_show(
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = DB_OPTION,
):
    """Exibe as configurações efetivas (com fallback para os padrões)."""
    with _abrir(db_path) as db:
        atual = db.get_setting(GENERAL_SETTINGS) or {}
    out = {
        "companyName": atual.get("companyName", DEFAULTS.company_name),
        "lowStockThreshold": atual.get("lowStockThreshold", DEFAULTS.low_stock_threshold),
        "currency": atual.get("currency", DEFAULTS.currency),
    }
    if as_json:
        _print_json(out)
        return
    _display_record(out, "Configurações")
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# backup / dados
# -----------------------

backup_app = typer.Typer(help="Backups verificados por checksum.")
app.add_typer(backup_app, name="backup")


@backup_app.command("create")
def cmd_backup_create(db_path: str = DB_OPTION):
    """Cria um snapshot agora."""
    with _abrir(db_path) as db:
        snapshot = db.create_backup()
    if snapshot is None:
        typer.echo("Backup não criado (dados ilegíveis; rode `validar`).")
        raise typer.Exit(code=1)
    typer.echo(f">> Backup criado (checksum {snapshot['checksum']}).")


@backup_app.command("list")
def cmd_backup_list(db_path: str = DB_OPTION):
    """Lista os snapshots do anel, do mais novo para o mais antigo."""
    with _abrir(db_path) as db:
        backups = db.get_backups()
        rows = [
            {
                "#": i,
                "quando": datetime.fromtimestamp(b.get("timestamp", 0) / 1000, tz=timezone.utc).astimezone().strftime("%d/%m/%Y %H:%M:%S"),
                "produtos": len((b.get("data") or {}).get("products") or []),
                "checksum": b.get("checksum"),
                "válido": "sim" if db.backup.verify_backup(b) else "NÃO",
            }
            for i, b in reversed(list(enumerate(backups)))
        ]
    _display_table(rows, "Backups")


@backup_app.command("recover")
def cmd_backup_recover(db_path: str = DB_OPTION):
    """Restaura o backup válido mais recente."""
    with _abrir(db_path) as db:
        ok = db.recover_from_backup()
    if not ok:
        typer.echo("Nenhum backup válido encontrado.")
        raise typer.Exit(code=1)
    typer.echo(">> Dados restaurados do backup.")


@app.command("exportar")
def cmd_exportar(path: str = typer.Argument(..., help="Arquivo JSON de destino"), db_path: str = DB_OPTION):
    """Exporta todos os dados para um arquivo JSON."""
    with _abrir(db_path) as db:
        info = exportar_json(db, path)
    _display_record(info, "Exportação")


@app.command("importar")
def cmd_importar(path: str = typer.Argument(..., help="Arquivo JSON exportado"), db_path: str = DB_OPTION):
    """Substitui todos os dados pelo conteúdo de um arquivo JSON."""
    with _abrir(db_path) as db:
        info = importar_json(db, path)
    _display_record(info, "Importação")
    if not info["sucesso"]:
        raise typer.Exit(code=1)


@app.command("limpar")
def cmd_limpar(
    yes: bool = typer.Option(False, "--yes", "-y", help="Não pedir confirmação"),
    db_path: str = DB_OPTION,
):
    """Apaga todos os dados (um backup é criado antes)."""
    if not yes and not typer.confirm("ATENÇÃO: Isso apagará todos os dados. Tem certeza?"):
        raise typer.Exit(code=1)
    with _abrir(db_path) as db:
        db.clear_all_data()
    typer.echo(">> Todos os dados foram apagados.")


# -----------------------
# relatórios
# -----------------------

@app.command("dashboard")
def cmd_dashboard(db_path: str = DB_OPTION):
    """Resumo do estoque e das movimentações recentes."""
    with _abrir(db_path) as db:
        resumo = resumo_dashboard(db)
        estoque = relatorio_estoque(db)
        movs = relatorio_movimentacoes(db)
        moeda = (db.get_setting() or {}).get("currency", DEFAULTS.currency)

    console.print(Panel(
        "\n".join([
            f"Total de produtos: {resumo['total_produtos']}",
            f"Valor total: {_fmt_moeda(resumo['valor_total'], moeda)}",
            f"Estoque baixo: {resumo['estoque_baixo']}",
            f"Categorias: {resumo['categorias']}",
            f"Movimentações ({movs['dias']} dias): {movs['total']} "
            f"(entradas {movs['entradas']}, saídas {movs['saidas']})",
        ]),
        title="Dashboard",
    ))
    _display_table(estoque["por_categoria"], "Estoque por Categoria")
    _display_table(estoque["estoque_baixo"], "Produtos com Estoque Baixo")
    _display_table(movs["recentes"], "Movimentações Recentes")


@app.command("relatorio")
def cmd_relatorio(
    saida: Optional[str] = typer.Option(None, "--saida", help="Grava o relatório neste arquivo JSON"),
    db_path: str = DB_OPTION,
):
    """Gera o relatório completo em JSON."""
    with _abrir(db_path) as db:
        rel = gerar_relatorio(db)
    if saida:
        with open(saida, "w", encoding="utf-8") as f:
            json.dump(rel, f, ensure_ascii=False, indent=2)
        typer.echo(f">> Relatório gravado em: {saida}")
        return
    _print_json(rel)


# -----------------------
# timers
# -----------------------

async def _vigiar(db: StockDatabase, segundos: Optional[float]) -> None:
    db.start()
    try:
        if segundos is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(segundos)
    finally:
        await db.destroy()


@app.command("vigiar")
def cmd_vigiar(
    segundos: Optional[float] = typer.Option(None, help="Duração (padrão: até Ctrl+C)"),
    db_path: str = DB_OPTION,
):
    """Executa backup periódico, checagem de integridade e validação."""
    db = StockDatabase.open(db_path)
    db.subscribe(lambda key: console.print(f"[yellow]Alteração externa em '{key}'[/]"))
    typer.echo(f">> Vigiando {db_path}...")
    try:
        asyncio.run(_vigiar(db, segundos))
    except KeyboardInterrupt:
        typer.echo("\nEncerrado.")
    typer.echo(f">> Backups disponíveis: {len(db.get_backups())}")


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
