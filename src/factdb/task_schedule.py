""" A schedule of tasks keyed by the timestamp at which they become due. """

import heapq
import itertools
from typing import Generic, TypeVar, Hashable

import numpy as np

T = TypeVar('T', bound=Hashable)

class TaskSchedule(Generic[T]):
    """ Min-heap of (timestamp, task) with cancellation.

    Each task may be scheduled at most once. Cancelled entries stay in the
    heap until they surface and are then dropped. """

    def __init__(self) -> None:
        self._heap:list[tuple[float, int, T]] = []
        self._live:dict[T, int] = {}
        self._seq = itertools.count()

    def push_task(self, timestamp:float, task:T) -> None:
        if task in self._live:
            raise ValueError(f'task {task} is already scheduled')
        seq = next(self._seq)
        self._live[task] = seq
        heapq.heappush(self._heap, (timestamp, seq, task))

    def cancel_task(self, task:T) -> None:
        self._live.pop(task, None)

    def is_task_scheduled(self, task:T) -> bool:
        return task in self._live

    def tasks(self) -> list[T]:
        """ every scheduled task, in no particular order """
        return list(self._live)

    def next_timestamp(self) -> float:
        self._drop_cancelled()
        if not self._heap:
            return np.inf
        return self._heap[0][0]

    def pop_current_tasks(self, timestamp:float) -> list[T]:
        """ removes and returns every task due at or before timestamp, in
        timestamp order (ties in push order) """
        tasks:list[T] = []
        while self._heap and self._heap[0][0] <= timestamp:
            _, seq, task = heapq.heappop(self._heap)
            if self._live.get(task) != seq:
                continue
            del self._live[task]
            tasks.append(task)
        return tasks

    def _drop_cancelled(self) -> None:
        while self._heap and self._live.get(self._heap[0][2]) != self._heap[0][1]:
            heapq.heappop(self._heap)

    def __len__(self) -> int:
        return len(self._live)
