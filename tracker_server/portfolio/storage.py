"""Ledger persistence boundary."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Protocol, Sequence

from tracker_server.portfolio.models import Operation

LOGGER = logging.getLogger(__name__)


class LedgerStore(Protocol):
    def load_records(self) -> list[Any]: ...

    def save(self, operations: Sequence[Operation]) -> None: ...


class MemoryLedgerStore:
    def __init__(self, operations: Sequence[Operation] | None = None) -> None:
        self._records: list[Any] = [operation.to_record() for operation in operations or []]

    def load_records(self) -> list[Any]:
        return [dict(record) if isinstance(record, dict) else record for record in self._records]

    def load(self) -> list[Operation]:
        return [Operation.from_record(record) for record in self._records]

    def save(self, operations: Sequence[Operation]) -> None:
        self._records = [operation.to_record() for operation in operations]


class JsonFileLedgerStore:
    """JSON array of ``{date, ticker, amount, qty}`` records; decimals stored as strings."""

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path if os.path.isabs(file_path) else os.path.abspath(file_path)

    def load_records(self) -> list[Any]:
        """Raw records as stored; the ledger validates them before use."""
        if not os.path.exists(self.file_path):
            return []
        with open(self.file_path, encoding="utf-8") as handle:
            records = json.load(handle)
        if not isinstance(records, list):
            raise ValueError(f"Ledger file must contain a JSON array: {self.file_path}")
        return records

    def load(self) -> list[Operation]:
        return [Operation.from_record(record) for record in self.load_records()]

    def save(self, operations: Sequence[Operation]) -> None:
        directory = os.path.dirname(self.file_path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".ledger-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump([operation.to_record() for operation in operations], handle, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.file_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        LOGGER.debug("ledger saved: path=%s operations=%s", self.file_path, len(operations))
