"""
Service layer: batch simulation over a process pool.
No I/O inside the simulation; point logs reach the exporter through a bounded buffer.
"""
from .batch_service import (
    BatchResult,
    UnitFailure,
    UnitResult,
    WorkUnit,
    build_units,
    partition,
    run_batch,
    run_from_config,
    run_unit,
)

__all__ = [
    "BatchResult",
    "UnitFailure",
    "UnitResult",
    "WorkUnit",
    "build_units",
    "partition",
    "run_batch",
    "run_from_config",
    "run_unit",
]
