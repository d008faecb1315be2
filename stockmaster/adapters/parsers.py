"""
Utilidades de parsing para valores numéricos digitados pelo usuário.

Este módulo interpreta strings de preço e quantidade no formato em que
costumam chegar da linha de comando ou de documentos importados (por
exemplo, "R$ 1.234,56", "10,5" ou "12.00"). O objetivo é extrair de forma
robusta o valor numérico, aceitando vírgula ou ponto como separador decimal.
"""

from __future__ import annotations

import re
from typing import Any, Optional

_NUM_RE = re.compile(r"[-+]?[\d.,]+")
_INT_RE = re.compile(r"[-+]?\d+")


def parse_decimal(txt: Any) -> Optional[float]:
    """Interpreta um número decimal em notação brasileira ou inglesa.

    Regras:
        - ``int``/``float`` são devolvidos como ``float``.
        - Símbolos de moeda e espaços são ignorados.
        - Se houver vírgula e ponto, o último a aparecer é o separador
          decimal; o outro é separador de milhar.
        - Só vírgula → vírgula decimal. Só ponto → ponto decimal, a menos
          que haja mais de um ponto (então são separadores de milhar).

    Exemplos:
        "R$ 1.234,56" → 1234.56
        "1,234.56"    → 1234.56
        "10,5"        → 10.5
        "1.000.000"   → 1000000.0
        ""            → None

    Args:
        txt: Valor a ser interpretado.

    Returns:
        O número como ``float`` ou ``None`` se não for possível interpretar.
    """
    if txt is None or isinstance(txt, bool):
        return None
    if isinstance(txt, (int, float)):
        try:
            return float(txt)
        except OverflowError:
            return None
    s = str(txt).strip()
    if not s:
        return None
    m = _NUM_RE.search(s.replace(" ", ""))
    if not m:
        return None
    num = m.group(0)
    if "," in num and "." in num:
        if num.rfind(",") > num.rfind("."):
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif "," in num:
        num = num.replace(".", "").replace(",", ".")
    elif num.count(".") > 1:
        num = num.replace(".", "")
    try:
        return float(num)
    except ValueError:
        return None


def parse_inteiro(txt: Any) -> Optional[int]:
    """Interpreta um inteiro; valores fracionários são rejeitados (``None``).

    Exemplos:
        "5"    → 5
        "5,0"  → 5
        "2.5"  → None
    """
    if isinstance(txt, int) and not isinstance(txt, bool):
        return txt
    if isinstance(txt, str) and _INT_RE.fullmatch(txt.strip()):
        return int(txt.strip())
    val = parse_decimal(txt)
    if val is None or not float(val).is_integer():
        return None
    return int(val)
