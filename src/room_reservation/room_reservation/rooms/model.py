from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..core.exceptions import ValidationError

_QR_RE = re.compile(r"^room-(\d+)(?::v(\d+))?$")


@dataclass(frozen=True)
class Room:
    room_id: int
    name: str
    capacity: int
    retired: bool = False
    qr_epoch: int = 1

    @property
    def qr_payload(self) -> str:
        return f"room-{self.room_id}:v{self.qr_epoch}"


@dataclass(frozen=True)
class QrPayload:
    room_id: int
    epoch: Optional[int] = None


def parse_qr_payload(value: str) -> QrPayload:
    """Decode ``room-<id>`` or ``room-<id>:v<epoch>`` as printed on the door."""
    m = _QR_RE.match((value or "").strip())
    if not m:
        raise ValidationError("QR code is not a room code")
    room_id, epoch = m.groups()
    return QrPayload(room_id=int(room_id), epoch=int(epoch) if epoch else None)
