from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

Money = Decimal

Q2 = Decimal("0.01")
ZERO = Decimal("0")


def D(x: Any, default: str = "0") -> Decimal:
    """Convertit float/int/str ("1 250,50") en Decimal."""
    if x is None or x == "":
        return Decimal(default)
    if isinstance(x, Decimal):
        return x
    if isinstance(x, (int, float)):
        return Decimal(str(x))
    s = str(x).replace("\u00a0", "").replace("\u202f", "").replace(" ", "").replace(",", ".")
    try:
        return Decimal(s)
    except InvalidOperation:
        raise ValueError(f"Montant invalide: {x!r}")


def round2(x: Decimal) -> Decimal:
    return x.quantize(Q2, rounding=ROUND_HALF_UP)


def to_float(x: Any) -> float | None:
    if x is None:
        return None
    return float(round2(D(x)))


def fmt_fcfa(x: Any) -> str:
    """1234567.5 -> '1 234 567,50 FCFA' (affichage fr-FR)."""
    val = round2(D(x))
    whole, _, cents = f"{val:.2f}".partition(".")
    neg = whole.startswith("-")
    digits = whole.lstrip("-")
    groups = []
    while digits:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    text = " ".join(groups) or "0"
    if cents != "00":
        text = f"{text},{cents}"
    return f"{'-' if neg else ''}{text} FCFA"
