from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol


class Storage(Protocol):
    """Low-level transactional backend contract for the repositories."""

    def unit_of_work(self) -> AbstractContextManager[None]:
        ...

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        ...

    def insert(self, sql: str, params: Sequence[Any] = ()) -> int:
        ...

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Any | None:
        ...

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Any]:
        ...

    def close(self) -> None:
        ...
