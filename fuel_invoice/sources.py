"""Where POS transactions come from."""
from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import List, Optional, Protocol

from .schemas import TransactionRecord


class TransactionSource(Protocol):
    def list_transactions(self, start: Optional[date] = None, end: Optional[date] = None) -> List[TransactionRecord]:
        ...


def in_range(txn: TransactionRecord, start: Optional[date], end: Optional[date]) -> bool:
    if txn.transaction_time is None:
        return True
    day = txn.transaction_time.date()
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


class JsonFileTransactionSource:
    """Read a JSON array of transactions and filter it by transaction date (inclusive)."""

    def __init__(self, json_path: str | Path) -> None:
        self.json_path = Path(json_path)

    def list_transactions(self, start: Optional[date] = None, end: Optional[date] = None) -> List[TransactionRecord]:
        data = json.loads(self.json_path.read_text(encoding="utf-8"))
        records = [TransactionRecord.model_validate(item) for item in data]
        return [txn for txn in records if in_range(txn, start, end)]
