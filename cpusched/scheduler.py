"""Ready queue and CPU scheduler: FCFS, round robin, priority aging and SRTF."""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import IntEnum
from typing import Protocol

from cpusched.process import Pcb, ProcessState


class SchedAlgorithm(IntEnum):
    """Scheduling policies the scheduler supports."""

    FCFS = 0x00
    PA = 0x01
    RR = 0x02
    SRTF = 0x03


class Machine(Protocol):
    """What the scheduler needs from the simulated machine."""

    def context_switch(self, cpu_id: int, pcb: Pcb | None, preemption_time: int) -> None: ...

    def force_preempt(self, cpu_id: int) -> None: ...

    def current_time(self) -> int: ...


def priority_with_age(current_time: int, process: Pcb, age_weight: int) -> float:
    """Return the aged priority: priority - (current_time - enqueue_time) * age_weight.

    Lower values mean the process should run sooner.
    """
    return float(process.priority - (current_time - process.enqueue_time) * age_weight)


class ReadyQueue:
    """Thread-safe ready queue whose selection rule depends on the algorithm."""

    def __init__(
        self,
        algorithm: SchedAlgorithm,
        clock: Callable[[], int],
        age_weight: int = 0,
    ) -> None:
        self.algorithm = SchedAlgorithm(algorithm)
        self.age_weight = age_weight
        self._clock = clock
        self._items: list[Pcb] = []
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)

    def enqueue(self, process: Pcb) -> None:
        """Append a process, stamp its enqueue time and wake one waiter."""
        with self._not_empty:
            self._items.append(process)
            process.enqueue_time = self._clock()
            self._not_empty.notify()

    def dequeue(self) -> Pcb | None:
        """Remove and return the next process to run, or None if empty.

        Ties go to the process that has been queued longest.
        """
        with self._lock:
            if not self._items:
                return None
            if self.algorithm is SchedAlgorithm.RR:
                return self._items.pop(0)
            key = self._selection_key()
            index = min(range(len(self._items)), key=lambda i: key(self._items[i]))
            return self._items.pop(index)

    def _selection_key(self) -> Callable[[Pcb], float]:
        if self.algorithm is SchedAlgorithm.PA:
            now = self._clock()
            weight = self.age_weight
            return lambda p: priority_with_age(now, p, weight)
        if self.algorithm is SchedAlgorithm.SRTF:
            return lambda p: p.total_time_remaining
        return lambda p: p.arrival_time

    def is_empty(self) -> bool:
        """Return whether no process is waiting."""
        with self._lock:
            return not self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _wait_not_empty(self, timeout: float | None = None) -> bool:
        with self._not_empty:
            return self._not_empty.wait_for(lambda: bool(self._items), timeout)


class Scheduler:
    """CPU scheduler driven by events from a simulated machine."""

    def __init__(
        self,
        cpu_count: int,
        algorithm: SchedAlgorithm = SchedAlgorithm.FCFS,
        timeslice: int = -1,
        age_weight: int = 0,
    ) -> None:
        if cpu_count < 1:
            raise ValueError("cpu_count must be at least 1")
        self.cpu_count = cpu_count
        self.algorithm = SchedAlgorithm(algorithm)
        self.timeslice = timeslice
        self.age_weight = age_weight
        self.current: list[Pcb | None] = [None] * cpu_count
        self._current_lock = threading.Lock()
        self._machine: Machine | None = None
        self.ready_queue = ReadyQueue(self.algorithm, self._now, age_weight)

    def attach(self, machine: Machine) -> None:
        """Connect the scheduler to the machine it schedules for."""
        self._machine = machine

    def _require_machine(self) -> Machine:
        if self._machine is None:
            raise RuntimeError("scheduler is not attached to a machine")
        return self._machine

    def _now(self) -> int:
        return self._require_machine().current_time()

    def _schedule(self, cpu_id: int) -> None:
        machine = self._require_machine()
        process = self.ready_queue.dequeue()
        if process is not None:
            process.state = ProcessState.RUNNING
        with self._current_lock:
            self.current[cpu_id] = process
        machine.context_switch(cpu_id, process, self.timeslice)

    def _running_on(self, cpu_id: int) -> Pcb:
        process = self.current[cpu_id]
        if process is None:
            raise RuntimeError(f"no process is running on CPU {cpu_id}")
        return process

    def idle(self, cpu_id: int) -> None:
        """Block until a process is ready, then schedule it on the CPU."""
        self.ready_queue._wait_not_empty()
        self._schedule(cpu_id)

    def preempt(self, cpu_id: int) -> None:
        """Return the running process to the ready queue and pick another."""
        with self._current_lock:
            process = self._running_on(cpu_id)
            process.state = ProcessState.READY
            self.ready_queue.enqueue(process)
        self._schedule(cpu_id)

    def yield_cpu(self, cpu_id: int) -> None:
        """Handle a process leaving the CPU for I/O."""
        with self._current_lock:
            self._running_on(cpu_id).state = ProcessState.WAITING
        self._schedule(cpu_id)

    def terminate(self, cpu_id: int) -> None:
        """Handle a process finishing."""
        with self._current_lock:
            self._running_on(cpu_id).state = ProcessState.TERMINATED
        self._schedule(cpu_id)

    def wake_up(self, process: Pcb) -> None:
        """Make a process ready and preempt a CPU if the policy calls for it."""
        victim: int | None = None
        with self._current_lock:
            process.state = ProcessState.READY
            self.ready_queue.enqueue(process)
            if self.algorithm is SchedAlgorithm.SRTF:
                victim = self._srtf_victim(process)
            elif self.algorithm is SchedAlgorithm.PA:
                victim = self._priority_victim(process)
        if victim is not None:
            self._require_machine().force_preempt(victim)

    def _srtf_victim(self, process: Pcb) -> int | None:
        if any(p is None for p in self.current):
            return None
        most_remaining = 0
        victim = 0
        for cpu_id, running in enumerate(self.current):
            if most_remaining < running.total_time_remaining:
                most_remaining = running.total_time_remaining
                victim = cpu_id
        if most_remaining != 0 and most_remaining > process.total_time_remaining:
            return victim
        return None

    def _priority_victim(self, process: Pcb) -> int | None:
        if any(p is None for p in self.current):
            return None
        now = self._now()
        new_priority = priority_with_age(now, process, self.age_weight)
        lowest = 0.0
        victim = 0
        for cpu_id, running in enumerate(self.current):
            aged = priority_with_age(now, running, self.age_weight)
            if lowest < aged:
                lowest = aged
                victim = cpu_id
        if lowest != 0 and new_priority < lowest:
            return victim
        return None