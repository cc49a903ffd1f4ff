from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Room


class RoomRepository(Protocol):
    def get_by_id(self, room_id: int) -> Optional[Room]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Room]:
        raise NotImplementedError

    def create(self, *, name: str, capacity: int) -> int:
        raise NotImplementedError

    def update(self, *, room_id: int, name: str, capacity: int, retired: bool, qr_epoch: int) -> bool:
        raise NotImplementedError
