"""
네트워크 가용성 검사 테스트
"""

from typing import List

import pytest

from core.domain.exceptions import NetworkUnavailableError
from core.domain.ports import NetworkProbePort
from core.usecases.network_check import NetworkAvailabilityChecker


class ScriptedProbe(NetworkProbePort):
    """미리 정한 결과를 순서대로 반환하는 프로브"""

    def __init__(self, outcomes: List[bool]):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def probe(self) -> bool:
        self.calls += 1
        if self.outcomes:
            return self.outcomes.pop(0)
        return False


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _checker(probe, logger, sleep, **kwargs):
    return NetworkAvailabilityChecker(probe, logger, sleep=sleep, **kwargs)


@pytest.mark.asyncio
async def test_first_attempt_success(logger):
    probe = ScriptedProbe([True])
    sleep = RecordingSleep()

    failed_attempts = await _checker(probe, logger, sleep).ensure_available()

    assert failed_attempts == 0
    assert probe.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_success_after_failures_reports_issue(logger):
    probe = ScriptedProbe([False, False, True])
    sleep = RecordingSleep()

    failed_attempts = await _checker(probe, logger, sleep).ensure_available()

    assert failed_attempts == 2
    assert probe.calls == 3
    assert sleep.delays == [1, 2]


@pytest.mark.asyncio
async def test_exact_attempt_ceiling_and_backoff(logger):
    probe = ScriptedProbe([])
    sleep = RecordingSleep()

    with pytest.raises(NetworkUnavailableError):
        await _checker(probe, logger, sleep, max_attempts=4).ensure_available()

    assert probe.calls == 4
    assert sleep.delays == [1, 2, 4]
    assert all(a <= b for a, b in zip(sleep.delays, sleep.delays[1:]))


@pytest.mark.asyncio
async def test_backoff_is_capped(logger):
    probe = ScriptedProbe([])
    sleep = RecordingSleep()

    with pytest.raises(NetworkUnavailableError):
        await _checker(probe, logger, sleep, max_attempts=8, max_delay=30).ensure_available()

    assert probe.calls == 8
    assert sleep.delays == [1, 2, 4, 8, 16, 30, 30]


@pytest.mark.asyncio
async def test_retries_are_logged(logger):
    probe = ScriptedProbe([False, True])

    await _checker(probe, logger, RecordingSleep()).ensure_available()

    assert any("1/4" in message for message in logger.messages("warning"))


def test_invalid_attempts(logger):
    with pytest.raises(ValueError):
        NetworkAvailabilityChecker(ScriptedProbe([]), logger, max_attempts=0)
