"""Command line entry point: choose a scheduling policy and run the machine."""

from __future__ import annotations

import string
import sys
from collections.abc import Sequence

from cpusched.scheduler import SchedAlgorithm, Scheduler
from cpusched.simulator import MAX_CPUS, MIN_CPUS, Simulator

USAGE = (
    "Multithreaded OS Simulator\n"
    "Usage: os-sim <# CPUs> [ -r <time slice> | -p <age weight> | -s ]\n"
    "    Default : FCFS Scheduler\n"
    "         -r : Round-Robin Scheduler\n"
    "         -p : Priority Aging Scheduler\n"
    "         -s : Shortest Remaining Time First\n"
)


class UsageError(ValueError):
    """Raised when the command line cannot be turned into a simulation."""


def _split_sign(text: str) -> tuple[int, str]:
    text = text.lstrip()
    if text[:1] in ("+", "-"):
        return (-1 if text[0] == "-" else 1), text[1:]
    return 1, text


def _leading_number(text: str, base: int) -> int:
    digits = string.digits + string.ascii_lowercase
    valid = digits[:base]
    run = ""
    for char in text.lower():
        if char not in valid:
            break
        run += char
    return int(run, base) if run else 0


def _atoi(text: str) -> int:
    """Read a leading decimal integer; text without one reads as 0."""
    sign, rest = _split_sign(text)
    return sign * _leading_number(rest, 10)


def _strtoul(text: str) -> int:
    """Read a leading integer, taking 0x for hexadecimal and 0 for octal."""
    sign, rest = _split_sign(text)
    lowered = rest.lower()
    if lowered.startswith("0x") and lowered[2:3] and lowered[2] in string.hexdigits:
        value = _leading_number(rest[2:], 16)
    elif lowered.startswith("0"):
        value = _leading_number(rest, 8)
    else:
        value = _leading_number(rest, 10)
    return sign * value


def _option_value(argv: Sequence[str], flag: str) -> str:
    if len(argv) < 3:
        raise UsageError(f"option {flag} needs a value")
    return argv[2]


def parse_args(argv: Sequence[str]) -> Scheduler:
    """Build a scheduler from the arguments that follow the program name.

    The first argument is the CPU count; an optional -r <time slice>,
    -p <age weight> or -s selects the policy, FCFS otherwise.
    """
    if len(argv) < 1:
        raise UsageError(USAGE)

    cpu_count = _strtoul(argv[0])
    if not MIN_CPUS <= cpu_count <= MAX_CPUS:
        raise UsageError(f"CPU Count must be an integer from {MIN_CPUS} to {MAX_CPUS}!")

    algorithm = SchedAlgorithm.FCFS
    timeslice = -1
    age_weight = 0
    if len(argv) > 1:
        flag = argv[1]
        if flag == "-r":
            algorithm = SchedAlgorithm.RR
            timeslice = _atoi(_option_value(argv, flag))
        elif flag == "-p":
            algorithm = SchedAlgorithm.PA
            age_weight = _atoi(_option_value(argv, flag))
        elif flag == "-s":
            algorithm = SchedAlgorithm.SRTF

    return Scheduler(cpu_count, algorithm, timeslice, age_weight)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the simulation described by the command line; return the exit status."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        scheduler = parse_args(argv)
    except UsageError as exc:
        message = str(exc)
        sys.stderr.write(message if message.endswith("\n") else message + "\n\n")
        return -1
    Simulator(scheduler).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())