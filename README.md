# cpusched

cpusched simulates an operating system that schedules a fixed workload of
eight processes across 1 to 16 CPUs. Each simulated CPU runs in its own
thread and calls the scheduler's handlers (`idle`, `preempt`, `yield_cpu`,
`terminate`, `wake_up`) when something happens to the process it runs. A
supervisor loop advances the clock one tick at a time. A tick stands for a
tenth of a second of simulated time. On every tick the supervisor:

- prints one line of a Gantt chart that shows the time, how many processes
  are running, ready and waiting, which process each CPU holds (or
  `(IDLE)`), and the I/O queue;
- advances the process on each CPU by one tick of its CPU burst;
- advances the request at the head of the FIFO I/O queue by one tick;
- admits a new process every 10 ticks until all eight have arrived.

When every process has terminated, the run prints a summary:

```
Total Context Switches: ...
Total execution time: ... s
Total time spent in READY state: ... s
```

## Scheduling algorithms

- **FCFS** (the default): the ready process with the earliest arrival time
  runs next. There is no time slice.
- **Round-robin** (`-r`): the ready queue is FIFO, and each process gets a
  time slice of the given number of ticks.
- **Priority with aging** (`-p`): the effective priority is
  `priority - (now - enqueue_time) * age_weight`, and lower values run first.
  When a process becomes ready and every CPU is busy, it preempts the running
  process with the worst (highest) effective priority if its own is better.
- **SRTF** (`-s`): the ready process with the least total time remaining runs
  next. When a process becomes ready and every CPU is busy, it preempts the
  running process with the most time remaining if that is more than its own.

For the ordering rules, ties go to the process that has been queued longest.

## Installation

```
pip install .
```

## Command line

```
cpusched <# CPUs> [ -r <time slice> | -p <age weight> | -s ]
```

Examples:

```
cpusched 1              # FCFS on one CPU
cpusched 2 -r 4         # round-robin, 4-tick time slice, two CPUs
cpusched 4 -p 2         # priority with aging, age weight 2
cpusched 1 -s           # shortest remaining time first
```

Numbers are read leniently. A leading integer is taken and any trailing text
is ignored. For the CPU count, `0x` marks a hexadecimal number and a leading
`0` an octal one. An unrecognised option leaves the scheduler on FCFS. The
command prints a message to standard error and returns status -1 in three
cases: no arguments are given, the CPU count is outside 1 to 16, or `-r` or
`-p` has no value.

The command runs the simulation as fast as it can, without pausing between
ticks.

## Using it from Python

```python
from cpusched.process import default_processes
from cpusched.scheduler import Scheduler, SchedAlgorithm
from cpusched.simulator import Simulator

scheduler = Scheduler(cpu_count=2, algorithm=SchedAlgorithm.RR, timeslice=4, age_weight=0)
sim = Simulator(scheduler, cpu_count=2, processes=default_processes(), tick=0.0, out=None)
stats = sim.run()
print(stats.context_switches, stats.elapsed_seconds, stats.ready_seconds)
```

- `cpusched.process` defines `Pcb`, `Op`, `OpType` and `ProcessState`.
  `default_processes()` returns a fresh copy of the eight-process workload. A
  `Pcb` program must alternate CPU and I/O bursts, start and end with a CPU
  burst, and finish with a `TERMINATE` operation. Otherwise `ValueError` is
  raised.
- `cpusched.scheduler` holds `Scheduler`, `ReadyQueue`, `SchedAlgorithm` and
  `priority_with_age()`.
- `cpusched.simulator.Simulator` takes these arguments:
  - a scheduler;
  - an optional CPU count, which must match the scheduler's;
  - an optional list of processes;
  - `tick`, the real seconds to sleep between ticks;
  - `out`, a text stream for the chart, which defaults to standard output.

  `run()` can be called once. It returns a `SimulationStats` record with the
  following fields: `context_switches`, `elapsed_ticks`, `ready_ticks`,
  `running_ticks` and `waiting_ticks`. The record also offers
  `elapsed_seconds`, `ready_seconds` and `report()`, which returns the summary
  text.
- `cpusched.cli` provides `parse_args()` and `main()`.

## What it does not do

The command line always runs the built-in eight-process workload. It cannot
read process definitions from a file. To run other workloads, pass your own
`Pcb` list to `Simulator` from Python.

## Running the tests

```
pip install .[test]
pytest
```