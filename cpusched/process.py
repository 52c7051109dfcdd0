"""Process control blocks, their programs, and the built-in workload."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

PROCESS_COUNT = 8
INIT_PRIORITY = 10


class ProcessState(IntEnum):
    """Lifecycle states of a simulated process."""

    NEW = 0
    READY = 1
    RUNNING = 2
    WAITING = 3
    TERMINATED = 4


class OpType(IntEnum):
    """Kinds of operation in a process program."""

    CPU = 0
    IO = 1
    TERMINATE = 2


@dataclass
class Op:
    """One step of a process program: a CPU burst, an I/O burst or the end."""

    type: OpType
    time: int = 0


def _validate_program(ops: list[Op]) -> None:
    if len(ops) < 2:
        raise ValueError("a program needs at least one CPU burst and a terminator")
    *bursts, last = ops
    if last.type is not OpType.TERMINATE:
        raise ValueError("a program must end with a TERMINATE operation")
    for position, op in enumerate(bursts):
        expected = OpType.CPU if position % 2 == 0 else OpType.IO
        if op.type is not expected:
            raise ValueError(
                f"operation {position} is {op.type.name}, expected {expected.name}; "
                "bursts must alternate CPU, IO, CPU, ... starting and ending with CPU"
            )


@dataclass(eq=False)
class Pcb:
    """Process control block.

    Instances compare by identity, so the same process can be located in
    queues and CPU slots regardless of how its mutable fields change.
    """

    pid: int
    name: str
    ops: list[Op]
    priority: int = INIT_PRIORITY
    arrival_time: int = 0
    total_time_remaining: int = 0
    time_in_cpu_burst: int = 0
    state: ProcessState = ProcessState.NEW
    pc: int = 0
    enqueue_time: int = 0

    def __post_init__(self) -> None:
        _validate_program(self.ops)

    def current_op(self) -> Op:
        """Return the operation the program counter points at."""
        return self.ops[self.pc]

    def advance(self) -> Op:
        """Move the program counter to the next operation and return it."""
        if self.pc + 1 >= len(self.ops):
            raise IndexError(f"process {self.pid} has no operation after the last one")
        self.pc += 1
        return self.ops[self.pc]


def _program(*steps: tuple[OpType, int]) -> list[Op]:
    return [Op(kind, time) for kind, time in steps]


_C, _I, _T = OpType.CPU, OpType.IO, OpType.TERMINATE

_PROGRAMS: tuple[tuple[tuple[OpType, int], ...], ...] = (
    (
        (_C, 2), (_I, 2), (_C, 3), (_I, 5), (_C, 1), (_I, 4), (_C, 2), (_I, 2),
        (_C, 3), (_I, 5), (_C, 1), (_I, 4), (_C, 2), (_I, 2), (_C, 3), (_I, 5),
        (_C, 1), (_I, 4), (_C, 2), (_I, 5), (_C, 1), (_I, 4), (_C, 2), (_I, 2),
        (_C, 3), (_I, 5), (_C, 1), (_I, 4), (_C, 2), (_T, 0),
    ),
    (
        (_C, 3), (_I, 4), (_C, 2), (_I, 6), (_C, 1), (_I, 3), (_C, 4), (_I, 4),
        (_C, 2), (_I, 6), (_C, 1), (_I, 3), (_C, 4), (_I, 4), (_C, 2), (_I, 6),
        (_C, 1), (_I, 3), (_C, 4), (_I, 3), (_C, 4), (_I, 4), (_C, 2), (_I, 6),
        (_C, 1), (_I, 3), (_C, 4), (_T, 0),
    ),
    (
        (_C, 6), (_I, 12), (_C, 3), (_I, 10), (_C, 2), (_I, 15), (_C, 5),
        (_I, 10), (_C, 2), (_I, 4), (_C, 1), (_I, 12), (_C, 3), (_I, 15),
        (_C, 2), (_I, 2), (_C, 1), (_I, 6), (_C, 1), (_T, 0),
    ),
    (
        (_C, 9), (_I, 1), (_C, 6), (_I, 1), (_C, 8), (_I, 1), (_C, 7), (_I, 1),
        (_C, 6), (_I, 1), (_C, 8), (_I, 1), (_C, 7), (_I, 1), (_C, 6), (_I, 1),
        (_C, 8), (_I, 1), (_C, 8), (_T, 0),
    ),
    (
        (_C, 10), (_I, 1), (_C, 14), (_I, 1), (_C, 7), (_I, 2), (_C, 11),
        (_I, 1), (_C, 14), (_I, 1), (_C, 7), (_I, 2), (_C, 11), (_I, 1),
        (_C, 14), (_I, 1), (_C, 7), (_I, 2), (_C, 11), (_T, 0),
    ),
    (
        (_C, 9), (_I, 1), (_C, 10), (_I, 2), (_C, 15), (_I, 1), (_C, 8),
        (_I, 1), (_C, 10), (_I, 2), (_C, 15), (_I, 1), (_C, 8), (_I, 1),
        (_C, 10), (_I, 2), (_C, 15), (_I, 1), (_C, 8), (_T, 0),
    ),
    (
        (_C, 6), (_I, 3), (_C, 9), (_I, 1), (_C, 14), (_I, 1), (_C, 11),
        (_I, 3), (_C, 9), (_I, 1), (_C, 14), (_I, 1), (_C, 11), (_I, 3),
        (_C, 9), (_I, 1), (_C, 14), (_I, 1), (_C, 11), (_T, 0),
    ),
    (
        (_C, 12), (_I, 3), (_C, 10), (_I, 3), (_C, 4), (_I, 1), (_C, 5),
        (_I, 4), (_C, 7), (_I, 4), (_C, 15), (_I, 2), (_C, 7), (_I, 1),
        (_C, 20), (_I, 3), (_C, 13), (_I, 5), (_C, 5), (_T, 0),
    ),
)

# (name, time_in_cpu_burst, priority, arrival_time, total_time_remaining)
_DESCRIPTORS: tuple[tuple[str, int, int, int, int], ...] = (
    ("Iapache", 2, 1, 0, 82),
    ("Ibash", 3, 2, 10, 90),
    ("Imozilla", 1, 0, 20, 112),
    ("Ccpu", 9, 3, 30, 82),
    ("Cgcc", 10, 4, 40, 118),
    ("Cspice", 9, 7, 50, 120),
    ("Cmysql", 6, 6, 60, 123),
    ("Csim", 6, 5, 70, 124),
)


def default_processes() -> list[Pcb]:
    """Return a fresh copy of the standard eight-process workload."""
    return [
        Pcb(
            pid=pid,
            name=name,
            ops=_program(*steps),
            priority=priority,
            arrival_time=arrival,
            total_time_remaining=total,
            time_in_cpu_burst=burst,
        )
        for pid, ((name, burst, priority, arrival, total), steps) in enumerate(
            zip(_DESCRIPTORS, _PROGRAMS)
        )
    ]