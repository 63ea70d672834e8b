"""
동기화 이벤트 싱크 어댑터

동기화 엔진은 이벤트 루프에서 싱크를 호출합니다.
QueueSyncEventSink는 스레드 안전한 큐에 이벤트를 넣어 UI 스레드가 꺼내 쓰도록 합니다.
"""

import queue
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from core.domain.entities import AccountSyncResult, SyncCycleReport
from core.domain.ports import SyncEventSinkPort


class SyncEventType(str, Enum):
    """동기화 이벤트 종류"""
    ACCOUNT_RESULT = "account_result"
    NETWORK_UNAVAILABLE = "network_unavailable"


class SyncEvent(BaseModel):
    """큐로 전달되는 동기화 이벤트"""

    type: SyncEventType
    result: Optional[AccountSyncResult] = None
    report: Optional[SyncCycleReport] = None


class QueueSyncEventSink(SyncEventSinkPort):
    """스레드 안전한 큐 기반 싱크"""

    def __init__(self, maxsize: int = 0):
        self.events: "queue.Queue[SyncEvent]" = queue.Queue(maxsize=maxsize)

    def on_account_result(self, result: AccountSyncResult) -> None:
        self.events.put(SyncEvent(type=SyncEventType.ACCOUNT_RESULT, result=result))

    def on_network_unavailable(self, report: SyncCycleReport) -> None:
        self.events.put(SyncEvent(type=SyncEventType.NETWORK_UNAVAILABLE, report=report))

    def get(self, timeout: Optional[float] = None) -> Optional[SyncEvent]:
        """이벤트 하나를 꺼냅니다. 제한 시간 안에 없으면 None"""
        try:
            return self.events.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list:
        """대기 중인 이벤트를 모두 꺼냅니다."""
        drained = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained
