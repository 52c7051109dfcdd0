"""Multithreaded machine that runs processes under a scheduler and charts them."""

from __future__ import annotations

import sys
import threading
import time
from collections import deque
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TextIO

from cpusched.process import OpType, Pcb, ProcessState, default_processes
from cpusched.scheduler import Scheduler

MIN_CPUS = 1
MAX_CPUS = 16


class _CpuState(Enum):
    IDLE = auto()
    RUNNING = auto()
    PREEMPT = auto()
    YIELD = auto()
    TERMINATE = auto()


@dataclass(eq=False)
class _Cpu:
    wakeup: threading.Condition
    current: Pcb | None = None
    state: _CpuState = _CpuState.IDLE
    preemption_timer: int = -1
    pending: _CpuState | None = None
    posted: int = 0
    completed: int = 0


@dataclass(eq=False)
class _IoRequest:
    pcb: Pcb
    remaining: int


@dataclass(frozen=True)
class SimulationStats:
    """Totals gathered over one simulation run, in ticks of 0.1 s."""

    context_switches: int
    elapsed_ticks: int
    ready_ticks: int
    running_ticks: int
    waiting_ticks: int

    @property
    def elapsed_seconds(self) -> float:
        return self.elapsed_ticks / 10

    @property
    def ready_seconds(self) -> float:
        return self.ready_ticks / 10

    def report(self) -> str:
        """Return the closing summary printed after the chart."""
        return (
            "\n\n"
            f"Total Context Switches: {self.context_switches}\n"
            f"Total execution time: {self.elapsed_seconds:.1f} s\n"
            f"Total time spent in READY state: {self.ready_seconds:.1f} s\n"
        )


class _InvertedLock:
    """Lock that admits any number of writers or a single reader.

    Scheduler handlers are writers; the chart printer is the reader.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._writers = 0

    def _acquire_writer(self) -> None:
        with self._cond:
            self._writers += 1

    def _release_writer(self) -> None:
        with self._cond:
            self._writers -= 1
            if self._writers == 0:
                self._cond.notify()

    @contextmanager
    def writing(self) -> Iterator[None]:
        self._acquire_writer()
        try:
            yield
        finally:
            self._release_writer()

    @contextmanager
    def paused_writer(self) -> Iterator[None]:
        self._release_writer()
        try:
            yield
        finally:
            self._acquire_writer()

    @contextmanager
    def reading(self) -> Iterator[None]:
        with self._cond:
            self._cond.wait_for(lambda: self._writers <= 0)
            yield


class Simulator:
    """Simulated multi-CPU machine with a FIFO I/O device.

    A supervisor loop advances time one tick at a time, prints a line of a
    Gantt chart per tick and delivers events to CPU threads, which call the
    scheduler's handlers.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        cpu_count: int | None = None,
        processes: Iterable[Pcb] | None = None,
        tick: float = 0.0,
        out: TextIO | None = None,
    ) -> None:
        if cpu_count is None:
            cpu_count = scheduler.cpu_count
        if not MIN_CPUS <= cpu_count <= MAX_CPUS:
            raise ValueError(f"CPU count must be an integer from {MIN_CPUS} to {MAX_CPUS}")
        if cpu_count != scheduler.cpu_count:
            raise ValueError(
                f"scheduler manages {scheduler.cpu_count} CPUs, machine has {cpu_count}"
            )
        self._scheduler = scheduler
        self._cpu_count = cpu_count
        self._processes = list(default_processes() if processes is None else processes)
        self._tick = tick
        self._out = out if out is not None else sys.stdout

        self._mutex = threading.Lock()
        self._cpus = [_Cpu(wakeup=threading.Condition(self._mutex)) for _ in range(cpu_count)]
        self._student_lock = _InvertedLock()
        self._io_queue: deque[_IoRequest] = deque()

        self._time = 0
        self._terminated = 0
        self._created = 0
        self._context_switches = 0
        self._ready_ticks = 0
        self._running_ticks = 0
        self._waiting_ticks = 0
        self._started = False
        self._finished = False
        self._error: BaseException | None = None

        scheduler.attach(self)

    # ------------------------------------------------------------------
    # Interface offered to the scheduler

    def context_switch(self, cpu_id: int, pcb: Pcb | None, preemption_time: int) -> None:
        """Select the process a CPU runs next; -1 means no time limit."""
        self._check_cpu(cpu_id)
        if pcb is not None and not any(pcb is p for p in self._processes):
            raise ValueError(f"process {pcb.pid} does not belong to this machine")
        with self._student_lock.paused_writer():
            with self._mutex:
                self._context_switches += 1
                cpu = self._cpus[cpu_id]
                cpu.current = pcb
                cpu.preemption_timer = preemption_time

    def force_preempt(self, cpu_id: int) -> None:
        """Preempt the process running on a CPU before its time slice ends."""
        self._check_cpu(cpu_id)
        with self._student_lock.paused_writer():
            with self._mutex:
                cpu = self._cpus[cpu_id]
                # The process may already be about to yield or terminate.
                if cpu.state is _CpuState.RUNNING and cpu.pending is None:
                    self._post(cpu, _CpuState.PREEMPT)

    def current_time(self) -> int:
        """Return the simulation time in ticks."""
        with self._mutex:
            return self._time

    # ------------------------------------------------------------------
    # Running

    def run(self) -> SimulationStats:
        """Run until every process has terminated and return the totals."""
        if self._started:
            raise RuntimeError("a simulator can only be run once")
        self._started = True
        for cpu_id in range(self._cpu_count):
            threading.Thread(
                target=self._cpu_loop, args=(cpu_id,), name=f"cpu-{cpu_id}", daemon=True
            ).start()
        self._write_header()
        try:
            while True:
                with self._mutex:
                    if self._error is not None:
                        raise self._error
                    if self._terminated >= len(self._processes):
                        stats = self._stats()
                        self._out.write(stats.report())
                        return stats
                    self._write_gantt_line()
                    self._simulate_cpus()
                    self._simulate_io()
                    self._simulate_creat()
                    self._time += 1
                time.sleep(self._tick)
        finally:
            with self._mutex:
                self._finished = True
                for cpu in self._cpus:
                    cpu.wakeup.notify_all()

    def _stats(self) -> SimulationStats:
        return SimulationStats(
            context_switches=self._context_switches,
            elapsed_ticks=self._time,
            ready_ticks=self._ready_ticks,
            running_ticks=self._running_ticks,
            waiting_ticks=self._waiting_ticks,
        )

    def _check_cpu(self, cpu_id: int) -> None:
        if not 0 <= cpu_id < self._cpu_count:
            raise ValueError(f"no CPU {cpu_id} on a machine with {self._cpu_count} CPUs")

    @contextmanager
    def _unlocked(self) -> Iterator[None]:
        self._mutex.release()
        try:
            yield
        finally:
            self._mutex.acquire()

    def _post(self, cpu: _Cpu, event: _CpuState) -> None:
        """Deliver an event to a CPU thread and wait until it has been handled.

        Must be called with the machine mutex held.
        """
        cpu.pending = event
        cpu.posted += 1
        target = cpu.posted
        cpu.wakeup.notify_all()
        cpu.wakeup.wait_for(
            lambda: cpu.completed >= target or self._error is not None or self._finished
        )

    # ------------------------------------------------------------------
    # CPU threads

    def _cpu_loop(self, cpu_id: int) -> None:
        cpu = self._cpus[cpu_id]
        handled_event = False
        try:
            while True:
                with self._mutex:
                    if handled_event:
                        cpu.completed += 1
                    cpu.wakeup.notify_all()
                    if self._finished:
                        return
                    if cpu.current is None and cpu.pending is None:
                        cpu.state = _CpuState.IDLE
                    else:
                        cpu.state = _CpuState.RUNNING
                        cpu.wakeup.wait_for(lambda: cpu.pending is not None or self._finished)
                        if self._finished:
                            return
                        cpu.state = cpu.pending
                        cpu.pending = None
                    state = cpu.state
                handled_event = state is not _CpuState.IDLE
                self._handle(cpu_id, state)
        except BaseException as exc:
            with self._mutex:
                if self._error is None:
                    self._error = exc
                cpu.wakeup.notify_all()

    def _handle(self, cpu_id: int, state: _CpuState) -> None:
        scheduler = self._scheduler
        if state is _CpuState.IDLE:
            # Idle runs without the writer lock so the chart can still print.
            scheduler.idle(cpu_id)
        elif state is _CpuState.PREEMPT:
            with self._student_lock.writing():
                scheduler.preempt(cpu_id)
        elif state is _CpuState.YIELD:
            with self._student_lock.writing():
                scheduler.yield_cpu(cpu_id)
        elif state is _CpuState.TERMINATE:
            with self._mutex:
                self._terminated += 1
            with self._student_lock.writing():
                scheduler.terminate(cpu_id)

    # ------------------------------------------------------------------
    # Supervisor work, called with the machine mutex held

    def _write_header(self) -> None:
        cpus = "".join(f" CPU {n}   " for n in range(self._cpu_count))
        rules = " ========" * self._cpu_count
        self._out.write(
            f"Time  Ru Re Wa     {cpus}     < I/O Queue <\n"
            f"===== == == ==     {rules}     =============\n"
        )

    def _write_gantt_line(self) -> None:
        running = ready = waiting = 0
        with self._student_lock.reading():
            for pcb in self._processes:
                if pcb.state is ProcessState.READY:
                    ready += 1
                elif pcb.state is ProcessState.RUNNING:
                    running += 1
                elif pcb.state is ProcessState.WAITING:
                    waiting += 1
            self._ready_ticks += ready
            self._running_ticks += running
            self._waiting_ticks += waiting

            parts = [f"{self._time / 10:<5.1f} {running:<2d} {ready:<2d} {waiting:<2d}     "]
            parts.extend(
                f" {cpu.current.name:<8}" if cpu.current is not None else " (IDLE)  "
                for cpu in self._cpus
            )
            parts.append("     <")
            parts.extend(f" {request.pcb.name}" for request in self._io_queue)
            parts.append(" <\n")
            self._out.write("".join(parts))

    def _simulate_cpus(self) -> None:
        for cpu in self._cpus:
            if cpu.current is not None:
                self._simulate_process(cpu, cpu.current)

    def _simulate_process(self, cpu: _Cpu, pcb: Pcb) -> None:
        op = pcb.current_op()
        if op.type is OpType.CPU:
            if op.time > 0:
                pcb.time_in_cpu_burst = op.time
                op.time -= 1
                pcb.total_time_remaining -= 1
                cpu.preemption_timer -= 1
                if cpu.preemption_timer == 0:
                    self._post(cpu, _CpuState.PREEMPT)
            else:
                following = pcb.advance()
                if following.type is OpType.IO:
                    self._io_queue.append(_IoRequest(pcb, following.time))
                    self._post(cpu, _CpuState.YIELD)
                elif following.type is OpType.TERMINATE:
                    self._post(cpu, _CpuState.TERMINATE)
        elif op.type is OpType.IO:
            self._out.write(f"Scheduled a process that's blocked on I/0! PID: {pcb.pid}\n")
        else:
            self._out.write(f"Scheduled a terminated process! PID: {pcb.pid}\n")

    def _simulate_io(self) -> None:
        if not self._io_queue:
            return
        request = self._io_queue[0]
        if request.remaining <= 0:
            # Remove the request before releasing the mutex; the queue may change.
            self._io_queue.popleft()
            request.pcb.advance()
            with self._unlocked(), self._student_lock.writing():
                self._scheduler.wake_up(request.pcb)
        else:
            request.remaining -= 1
            request.pcb.total_time_remaining -= 1

    def _simulate_creat(self) -> None:
        if self._time % 10 == 0 and self._created < len(self._processes):
            pcb = self._processes[self._created]
            with self._unlocked(), self._student_lock.writing():
                self._scheduler.wake_up(pcb)
            self._created += 1