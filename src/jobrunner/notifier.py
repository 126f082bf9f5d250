# notifier.py
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .model import JobStatus


class Notifier(ABC):
    """
    Sink for job status transitions and the job log.

    Owned by whoever submitted the job; the runner only writes to it.
    """

    @property
    @abstractmethod
    def status(self) -> JobStatus:
        ...

    @status.setter
    @abstractmethod
    def status(self, value: JobStatus) -> None:
        ...

    @property
    @abstractmethod
    def ended(self) -> Optional[datetime]:
        ...

    @ended.setter
    @abstractmethod
    def ended(self, value: datetime) -> None:
        ...

    @abstractmethod
    def write(self, line: str) -> None:
        """Append one line to the job log."""
        ...


class MemoryNotifier(Notifier):
    """
    In-process notifier.

    Keeps every status transition and an append-only list of log lines.
    Readers may tail the log from other threads while the job writes to it;
    lines are observed in the order they were written.
    """

    def __init__(self, echo: Optional[Callable[[str], None]] = None):
        self._lock = threading.Lock()
        self._status = JobStatus.NEW
        self._transitions: List[JobStatus] = [JobStatus.NEW]
        self._ended: Optional[datetime] = None
        self._lines: List[str] = []
        self._echo = echo

    @property
    def status(self) -> JobStatus:
        return self._status

    @status.setter
    def status(self, value: JobStatus) -> None:
        value = JobStatus(value)
        with self._lock:
            if value == self._status:
                return
            self._status = value
            self._transitions.append(value)

    @property
    def transitions(self) -> Tuple[JobStatus, ...]:
        with self._lock:
            return tuple(self._transitions)

    @property
    def ended(self) -> Optional[datetime]:
        return self._ended

    @ended.setter
    def ended(self, value: datetime) -> None:
        with self._lock:
            if self._ended is not None:
                raise RuntimeError("job end time has already been recorded")
            self._ended = value

    def write(self, line: str) -> None:
        line = line.rstrip("\n")
        with self._lock:
            self._lines.append(line)
        if self._echo is not None:
            self._echo(line)

    @property
    def lines(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def tail(self, offset: int = 0) -> List[str]:
        """Lines written since `offset` (the count a reader has already seen)."""
        with self._lock:
            return self._lines[offset:]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)
