"""Блокировки на уровне агрегата (одна привычка - один замок)."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Hashable

from .logging import engine_log as log


class AggregateLocks:
    """
    Реестр asyncio-замков, по одному на идентификатор агрегата.

    Все изменения одной привычки выполняются строго последовательно внутри процесса,
    изменения разных привычек не блокируют друг друга.
    Замок удаляется из реестра, как только его больше никто не ждет.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._holders: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncGenerator[None, None]:
        """
        Захватывает замок агрегата на время блока `async with`.

        Args:
            key (Hashable): Идентификатор агрегата (ID привычки).
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1

        if lock.locked():
            log.debug(f"Ожидание замка агрегата {key!r} (в очереди: {self._holders[key] - 1}).")

        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1

            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
