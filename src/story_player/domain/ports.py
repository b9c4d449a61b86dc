"""Ports for profile persistence, timers, and challenge judging."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from story_player.domain.models import SaveResult

if TYPE_CHECKING:
    from story_player.core.content_schema import CodeChallenge
    from story_player.core.profile_schema import KidProfile


class ProfileStore(Protocol):
    """Durable key-value store of kid profiles keyed by profile id."""

    async def init(self) -> None:
        ...

    async def get(self, profile_id: str) -> KidProfile | None:
        ...

    async def put(self, profile: KidProfile) -> SaveResult:
        ...

    async def delete(self, profile_id: str) -> bool:
        ...

    async def list_all(self) -> list[KidProfile]:
        ...

    async def close(self) -> None:
        ...

    def is_initialized(self) -> bool:
        ...


class TimerHandle(Protocol):
    """Cancellable deferred callback."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Schedules callbacks after a delay in seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class ChallengeJudge(Protocol):
    """External grader deciding whether submitted code meets a challenge."""

    def judge(self, challenge: CodeChallenge, code: str) -> bool:
        ...
