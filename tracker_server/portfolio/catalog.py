"""Static asset catalog."""

from __future__ import annotations

import json
import os
from decimal import Decimal
from typing import Sequence

from tracker_server.portfolio.models import AssetDefinition

_GROWTH = "Equities Growth (CEDEARs)"
_VALUE = "Equities Value/Defensivos (CEDEARs)"
_FCI = "FCI Líquido"
_CORP = "Fixed Income Corporativo"
_SOVEREIGN = "Soberanos"

DEFAULT_CATALOG: tuple[AssetDefinition, ...] = (
    AssetDefinition(1, _GROWTH, "AMZND", Decimal("13.29")),
    AssetDefinition(2, _GROWTH, "MSFTD", Decimal("12.98")),
    AssetDefinition(3, _GROWTH, "JPMD", Decimal("8.40")),
    AssetDefinition(4, _GROWTH, "XLFD", Decimal("8.22")),
    AssetDefinition(5, _GROWTH, "GSD", Decimal("0")),
    AssetDefinition(6, _VALUE, "UNHD", Decimal("8.58")),
    AssetDefinition(7, _VALUE, "XLVD", Decimal("8.64")),
    AssetDefinition(8, _VALUE, "CATD", Decimal("0")),
    AssetDefinition(9, _VALUE, "PFED", Decimal("0")),
    AssetDefinition(10, _VALUE, "BIIBD", Decimal("0")),
    AssetDefinition(11, _VALUE, "MMMD", Decimal("0")),
    AssetDefinition(12, _VALUE, "DIAD", Decimal("0")),
    AssetDefinition(13, _VALUE, "JNJD", Decimal("6.73")),
    AssetDefinition(14, _FCI, "Ciclo Nova II Clase A", Decimal("6.28")),
    AssetDefinition(15, _CORP, "YPFDD", Decimal("12.17")),
    AssetDefinition(16, _CORP, "PAMPD", Decimal("9.10")),
    AssetDefinition(17, _CORP, "TXARD", Decimal("0")),
    AssetDefinition(18, _CORP, "YM39D", Decimal("0")),
    AssetDefinition(19, _CORP, "YMCID", Decimal("0")),
    AssetDefinition(20, _SOVEREIGN, "GD30D", Decimal("5.62")),
    AssetDefinition(21, _SOVEREIGN, "GD35D", Decimal("0")),
)


def load_catalog(file_path: str | None) -> tuple[AssetDefinition, ...]:
    """Read a JSON catalog, or return the built-in one when no path is given."""
    if not file_path:
        return DEFAULT_CATALOG
    absolute_path = file_path if os.path.isabs(file_path) else os.path.abspath(file_path)
    with open(absolute_path, encoding="utf-8") as handle:
        rows = json.load(handle)
    if not isinstance(rows, list):
        raise ValueError("Catalog file must contain a JSON array of assets.")
    catalog = tuple(
        AssetDefinition(
            id=int(row["id"]),
            category=str(row["category"]),
            ticker=str(row["ticker"]),
            declared_weight=Decimal(str(row.get("declared_weight", "0"))),
        )
        for row in rows
    )
    ids = [asset.id for asset in catalog]
    if len(ids) != len(set(ids)):
        raise ValueError("Catalog asset ids must be unique.")
    return catalog


def find_asset(catalog: Sequence[AssetDefinition], ticker: str) -> AssetDefinition | None:
    wanted = ticker.strip().upper()
    return next((asset for asset in catalog if asset.ticker.strip().upper() == wanted), None)
