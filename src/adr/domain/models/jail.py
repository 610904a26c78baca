from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class JailReleaseState(IntEnum):
    SERVING = 0
    TIME_SERVED = 1
    BAILED = 2

    @property
    def label(self) -> str:
        return {
            JailReleaseState.SERVING: "Serving",
            JailReleaseState.TIME_SERVED: "Time Served",
            JailReleaseState.BAILED: "Bailed Out",
        }[self]


@dataclass
class JailRecord:
    id: int
    user_id: int
    reason: str
    jailed_at: int
    release_at: int
    bail_cost: int
    released: JailReleaseState = JailReleaseState.SERVING
    released_at: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.released == JailReleaseState.SERVING

    @property
    def sentence_seconds(self) -> int:
        return self.release_at - self.jailed_at
