import threading

import pytest

from cpusched.process import Op, OpType, Pcb, ProcessState
from cpusched.scheduler import ReadyQueue, SchedAlgorithm, Scheduler, priority_with_age


class FakeMachine:
    def __init__(self, time=0):
        self.time = time
        self.switches = []
        self.preempted = []

    def context_switch(self, cpu_id, pcb, preemption_time):
        self.switches.append((cpu_id, pcb, preemption_time))

    def force_preempt(self, cpu_id):
        self.preempted.append(cpu_id)

    def current_time(self):
        return self.time


def make_pcb(pid, priority=5, arrival=0, remaining=20):
    return Pcb(
        pid=pid,
        name=f"p{pid}",
        ops=[Op(OpType.CPU, 3), Op(OpType.TERMINATE, 0)],
        priority=priority,
        arrival_time=arrival,
        total_time_remaining=remaining,
    )


def make_scheduler(cpu_count=1, algorithm=SchedAlgorithm.FCFS, timeslice=-1, age_weight=0, time=0):
    machine = FakeMachine(time)
    sched = Scheduler(cpu_count, algorithm, timeslice, age_weight)
    sched.attach(machine)
    return sched, machine


def test_algorithm_values():
    assert [a.value for a in SchedAlgorithm] == [0, 1, 2, 3]
    q = ReadyQueue(SchedAlgorithm(2), lambda: 0)
    procs = [make_pcb(i, arrival=10 - i, remaining=10 - i) for i in range(3)]
    for p in procs:
        q.enqueue(p)
    assert [q.dequeue() for _ in procs] == procs


def test_priority_with_age_without_waiting_is_priority():
    p = make_pcb(0, priority=7)
    p.enqueue_time = 12
    assert priority_with_age(12, p, 4) == 7.0


def test_priority_with_age_zero_weight():
    p = make_pcb(0, priority=7)
    p.enqueue_time = 3
    assert priority_with_age(50, p, 0) == 7.0


def test_priority_decreases_with_waiting():
    p = make_pcb(0, priority=9)
    p.enqueue_time = 0
    values = [priority_with_age(t, p, 2) for t in range(5)]
    assert values == sorted(values, reverse=True)
    assert len(set(values)) == 5


def test_queue_empty_dequeue_returns_none():
    q = ReadyQueue(SchedAlgorithm.FCFS, lambda: 0)
    assert q.is_empty()
    assert len(q) == 0
    assert q.dequeue() is None


def test_enqueue_stamps_time():
    q = ReadyQueue(SchedAlgorithm.RR, lambda: 42)
    p = make_pcb(0)
    q.enqueue(p)
    assert p.enqueue_time == 42
    assert len(q) == 1
    assert not q.is_empty()


def test_round_robin_is_fifo():
    q = ReadyQueue(SchedAlgorithm.RR, lambda: 0)
    procs = [make_pcb(i, arrival=10 - i) for i in range(4)]
    for p in procs:
        q.enqueue(p)
    assert [q.dequeue() for _ in procs] == procs
    assert q.dequeue() is None


def test_fcfs_picks_earliest_arrival():
    q = ReadyQueue(SchedAlgorithm.FCFS, lambda: 0)
    a, b, c = make_pcb(0, arrival=30), make_pcb(1, arrival=10), make_pcb(2, arrival=20)
    for p in (a, b, c):
        q.enqueue(p)
    assert [q.dequeue() for _ in range(3)] == [b, c, a]


def test_srtf_picks_least_remaining_ties_to_oldest():
    q = ReadyQueue(SchedAlgorithm.SRTF, lambda: 0)
    a, b, c = make_pcb(0, remaining=50), make_pcb(1, remaining=10), make_pcb(2, remaining=10)
    for p in (a, b, c):
        q.enqueue(p)
    assert q.dequeue() is b
    assert q.dequeue() is c
    assert q.dequeue() is a


def test_priority_aging_lets_old_process_win():
    clock = {"t": 0}
    q = ReadyQueue(SchedAlgorithm.PA, lambda: clock["t"], age_weight=1)
    old = make_pcb(0, priority=8)
    q.enqueue(old)
    clock["t"] = 10
    fresh = make_pcb(1, priority=3)
    q.enqueue(fresh)
    assert q.dequeue() is old
    assert q.dequeue() is fresh


def test_priority_without_aging_picks_lowest_value():
    q = ReadyQueue(SchedAlgorithm.PA, lambda: 5, age_weight=0)
    a, b = make_pcb(0, priority=4), make_pcb(1, priority=1)
    q.enqueue(a)
    q.enqueue(b)
    assert q.dequeue() is b


def test_unattached_scheduler_raises():
    sched = Scheduler(1, SchedAlgorithm.FCFS, -1, 0)
    with pytest.raises(RuntimeError):
        sched.wake_up(make_pcb(0))


def test_invalid_cpu_count():
    with pytest.raises(ValueError):
        Scheduler(0, SchedAlgorithm.FCFS, -1, 0)


def test_wake_up_then_idle_schedules_with_timeslice():
    sched, machine = make_scheduler(algorithm=SchedAlgorithm.RR, timeslice=4)
    p = make_pcb(0)
    sched.wake_up(p)
    assert p.state is ProcessState.READY
    sched.idle(0)
    assert machine.switches == [(0, p, 4)]
    assert p.state is ProcessState.RUNNING
    assert sched.current[0] is p
    assert sched.ready_queue.is_empty()


def test_yield_marks_waiting_and_switches_to_idle():
    sched, machine = make_scheduler()
    p = make_pcb(0)
    sched.wake_up(p)
    sched.idle(0)
    sched.yield_cpu(0)
    assert p.state is ProcessState.WAITING
    assert machine.switches[-1] == (0, None, -1)
    assert sched.current[0] is None


def test_terminate_marks_terminated_and_runs_next():
    sched, machine = make_scheduler()
    a, b = make_pcb(0), make_pcb(1, arrival=5)
    sched.wake_up(a)
    sched.idle(0)
    sched.wake_up(b)
    sched.terminate(0)
    assert a.state is ProcessState.TERMINATED
    assert b.state is ProcessState.RUNNING
    assert machine.switches[-1] == (0, b, -1)


def test_preempt_requeues_running_process():
    sched, machine = make_scheduler(algorithm=SchedAlgorithm.RR, timeslice=2)
    a, b = make_pcb(0), make_pcb(1)
    sched.wake_up(a)
    sched.idle(0)
    sched.wake_up(b)
    sched.preempt(0)
    assert sched.current[0] is b
    assert a.state is ProcessState.READY
    assert len(sched.ready_queue) == 1
    assert sched.ready_queue.dequeue() is a


def test_preempt_on_idle_cpu_raises():
    sched, _ = make_scheduler()
    with pytest.raises(RuntimeError):
        sched.preempt(0)


def test_fcfs_wake_up_never_preempts():
    sched, machine = make_scheduler()
    sched.wake_up(make_pcb(0, arrival=50))
    sched.idle(0)
    sched.wake_up(make_pcb(1, arrival=0))
    assert machine.preempted == []


def test_srtf_preempts_longest_running():
    sched, machine = make_scheduler(cpu_count=2, algorithm=SchedAlgorithm.SRTF)
    a, b = make_pcb(0, remaining=50), make_pcb(1, remaining=80)
    sched.wake_up(a)
    sched.idle(0)
    sched.wake_up(b)
    sched.idle(1)
    assert machine.preempted == []
    sched.wake_up(make_pcb(2, remaining=10))
    assert machine.preempted == [1]
    sched.wake_up(make_pcb(3, remaining=90))
    assert machine.preempted == [1]


def test_srtf_no_preempt_while_a_cpu_is_idle():
    sched, machine = make_scheduler(cpu_count=2, algorithm=SchedAlgorithm.SRTF)
    sched.wake_up(make_pcb(0, remaining=50))
    sched.idle(0)
    sched.wake_up(make_pcb(1, remaining=1))
    assert machine.preempted == []


def test_priority_preempts_lowest_priority_cpu():
    sched, machine = make_scheduler(cpu_count=2, algorithm=SchedAlgorithm.PA)
    a, b = make_pcb(0, priority=3), make_pcb(1, priority=7)
    sched.wake_up(a)
    sched.idle(0)
    sched.wake_up(b)
    sched.idle(1)
    sched.wake_up(make_pcb(2, priority=1))
    assert machine.preempted == [1]
    sched.wake_up(make_pcb(3, priority=9))
    assert machine.preempted == [1]


def test_idle_blocks_until_process_arrives():
    sched, machine = make_scheduler()
    worker = threading.Thread(target=sched.idle, args=(0,))
    worker.start()
    worker.join(0.05)
    assert worker.is_alive()
    p = make_pcb(0)
    sched.wake_up(p)
    worker.join(2)
    assert not worker.is_alive()
    assert machine.switches == [(0, p, -1)]