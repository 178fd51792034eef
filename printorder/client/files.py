# printorder/client/files.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional


@dataclass(frozen=True, repr=False)
class BinaryPayload:
    """Raw bytes of one uploaded file. Never serialized with the cart."""

    data: bytes
    content_type: str
    file_name: str

    @property
    def size(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"BinaryPayload({self.file_name!r}, {self.content_type!r}, {self.size} bytes)"


class BinaryStore:
    """
    Process-local map of line-item id -> payload.

    The store owns the bytes until delete()/clear(); the cart only ever holds
    the id. Nothing here survives a restart.
    """

    def __init__(self) -> None:
        self._files: Dict[str, BinaryPayload] = {}

    def put(self, item_id: str, payload: BinaryPayload) -> None:
        self._files[item_id] = payload

    def get(self, item_id: str) -> Optional[BinaryPayload]:
        return self._files.get(item_id)

    def delete(self, item_id: str) -> None:
        self._files.pop(item_id, None)

    def clear(self) -> None:
        self._files.clear()

    def keys(self) -> List[str]:
        return list(self._files)

    def missing(self, item_ids: Iterable[str]) -> List[str]:
        """Ids from item_ids that have no payload, in the order given."""
        return [i for i in item_ids if i not in self._files]

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._files

    def __len__(self) -> int:
        return len(self._files)
