"""Pure kernel domain helpers (no I/O)."""

from edges_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from edges_kernel.domain.processing import ProcessingRecord, ProcessingStatus

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ProcessingRecord",
    "ProcessingStatus",
]
