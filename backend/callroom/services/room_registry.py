"""통화방 점유 레지스트리

방 이름 -> 입장이 허용된 참여자 identity 집합을 관리합니다.
- 방은 첫 입장 시 생성되고, 마지막 참여자가 나가면 삭제됩니다.
- 같은 identity의 재입장은 인원에 다시 포함되지 않습니다.
- 정원 확인과 삽입은 하나의 lock 안에서 수행됩니다.

프로세스 메모리에만 저장되므로 재시작 시 모든 방이 비워지고,
여러 인스턴스로 배포하려면 RoomRegistry를 공유 저장소 기반으로 구현해야 합니다.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from callroom.core.room_config import ROOM_CAPACITY

logger = logging.getLogger(__name__)


class AdmissionResult(str, Enum):
    """입장 시도 결과"""

    ADMITTED = "admitted"
    REJOINED = "rejoined"
    ROOM_FULL = "room_full"

    @property
    def admitted(self) -> bool:
        return self is not AdmissionResult.ROOM_FULL


@dataclass(frozen=True)
class RoomStatus:
    """방 점유 상태 스냅샷"""

    participant_count: int
    is_full: bool


class RoomRegistry(ABC):
    """방 점유 레지스트리 인터페이스"""

    capacity: int

    @abstractmethod
    async def try_admit(self, room_id: str, participant_id: str) -> AdmissionResult:
        """참여자 입장 시도 (정원 확인 + 등록을 원자적으로 수행)"""
        ...

    @abstractmethod
    async def remove(self, room_id: str, participant_id: str) -> None:
        """참여자 제거 (없으면 무시, 빈 방은 삭제)"""
        ...

    @abstractmethod
    async def status(self, room_id: str) -> RoomStatus:
        """방 상태 조회 (방을 생성하지 않음)"""
        ...

    @abstractmethod
    async def members(self, room_id: str) -> frozenset[str]:
        """방 참여자 identity 스냅샷"""
        ...

    @abstractmethod
    async def room_count(self) -> int:
        """현재 참여자가 있는 방 수"""
        ...


class InMemoryRoomRegistry(RoomRegistry):
    """프로세스 메모리 기반 레지스트리 (단일 인스턴스용)"""

    def __init__(self, capacity: int = ROOM_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        # room_id -> {participant_id}
        self._rooms: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()

    async def try_admit(self, room_id: str, participant_id: str) -> AdmissionResult:
        async with self._lock:
            participants = self._rooms.get(room_id)

            if participants is not None and participant_id in participants:
                logger.info(f"[RoomRegistry] Rejoined: room={room_id}, id={participant_id}")
                return AdmissionResult.REJOINED

            if participants is not None and len(participants) >= self.capacity:
                logger.info(
                    f"[RoomRegistry] Rejected (room full): room={room_id}, id={participant_id}"
                )
                return AdmissionResult.ROOM_FULL

            # 정원 확인이 끝난 뒤에만 방을 만든다 (거절 시 빈 방이 남지 않도록)
            self._rooms.setdefault(room_id, set()).add(participant_id)
            logger.info(
                f"[RoomRegistry] Admitted: room={room_id}, id={participant_id}, "
                f"count={len(self._rooms[room_id])}/{self.capacity}"
            )
            return AdmissionResult.ADMITTED

    async def remove(self, room_id: str, participant_id: str) -> None:
        async with self._lock:
            participants = self._rooms.get(room_id)
            if participants is None:
                return

            participants.discard(participant_id)

            if not participants:
                del self._rooms[room_id]
                logger.info(f"[RoomRegistry] Room emptied and removed: room={room_id}")
            else:
                logger.info(
                    f"[RoomRegistry] Removed: room={room_id}, id={participant_id}, "
                    f"count={len(participants)}/{self.capacity}"
                )

    async def status(self, room_id: str) -> RoomStatus:
        participants = self._rooms.get(room_id)
        count = len(participants) if participants else 0
        return RoomStatus(participant_count=count, is_full=count >= self.capacity)

    async def members(self, room_id: str) -> frozenset[str]:
        return frozenset(self._rooms.get(room_id, ()))

    async def room_count(self) -> int:
        return len(self._rooms)
