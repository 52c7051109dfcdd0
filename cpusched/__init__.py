"""Multithreaded CPU scheduling simulator with FCFS, round-robin, priority-aging and SRTF policies."""

__version__ = "0.1.0"
__all__ = ["process", "scheduler", "simulator", "cli"]