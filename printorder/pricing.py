# printorder/pricing.py
from __future__ import annotations

from enum import Enum
from typing import Dict

from .errors import ValidationError


class PrintSize(str, Enum):
    SMALL = "small"   # A4
    LARGE = "large"   # A3


class DeclaredType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"


# whole currency units per print
PRICE_PER_SIZE: Dict[PrintSize, int] = {
    PrintSize.SMALL: 200,
    PrintSize.LARGE: 400,
}

DOCUMENT_CONTENT_TYPE = "application/pdf"
DOCUMENT_SUFFIX = ".pdf"


def unit_price(size: PrintSize | str) -> int:
    try:
        return PRICE_PER_SIZE[PrintSize(size)]
    except ValueError:
        raise ValidationError(f"unknown print size: {size!r}")


def line_total(size: PrintSize | str, quantity: int) -> int:
    return unit_price(size) * quantity


def content_type_matches(declared: DeclaredType | str, content_type: str | None) -> bool:
    """image accepts any image/*; document accepts exactly application/pdf."""
    ct = (content_type or "").split(";", 1)[0].strip().lower()
    if DeclaredType(declared) is DeclaredType.IMAGE:
        return ct.startswith("image/")
    return ct == DOCUMENT_CONTENT_TYPE
