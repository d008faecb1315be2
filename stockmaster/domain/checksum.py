"""
Checksum dos snapshots de backup.

Não é um controle de segurança: serve apenas para detectar corrupção
acidental. O hash é calculado sobre uma serialização canônica (chaves
ordenadas, separadores compactos), então a ordem das chaves nos
dicionários não altera o resultado.
"""

from __future__ import annotations

import json
from typing import Any


def canonical_json(data: Any) -> str:
    """Serializa ``data`` de forma estável (chaves ordenadas, sem espaços)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def rolling_hash(text: str) -> int:
    """Hash 32 bits com sinal: ``h = h * 31 + ord(ch)`` a cada caractere.

    Exemplos:
        ""   → 0
        "a"  → 97
        "ab" → 3105
    """
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    # interpreta como inteiro de 32 bits com sinal
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def calculate_checksum(data: Any) -> str:
    return str(rolling_hash(canonical_json(data)))
