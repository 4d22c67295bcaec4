"""
Resource hints for external tool invocations (cores, memory).

Hints are advisory: they are passed into command templates (e.g. as a thread
count) and recorded in the execution trace, but nothing enforces them.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Resources:
    """
    CPU and memory requested by one task.
    """

    ncpu: int = 1
    mem_gb: float | None = None

    def __str__(self) -> str:
        res = f'{self.ncpu} cpu'
        if self.mem_gb:
            res += f', {self.mem_gb:g} GB'
        return res


class ResourceLimits:
    """
    Maximum resources a single task can request on this run, from the
    `resources/max_cpus` and `resources/max_memory_gb` config values.
    """

    min_cpu: int = 1

    def __init__(self, max_ncpu: int, max_mem_gb: float | None = None):
        self.max_ncpu = max_ncpu
        self.max_mem_gb = max_mem_gb

    def request_resources(
        self,
        ncpu: int | None = None,
        mem_gb: float | None = None,
    ) -> Resources:
        """
        Request resources, capping each requirement at the run maximum.
        If no requirements are provided, the minimal amount of cores
        (self.min_cpu) will be used.
        """
        return Resources(
            ncpu=self.adjust_ncpu(ncpu or self.min_cpu),
            mem_gb=self.adjust_mem_gb(mem_gb) if mem_gb else None,
        )

    def adjust_ncpu(self, ncpu: int) -> int:
        """
        Keep the number of CPUs within [min_cpu, max_ncpu].
        """
        return max(self.min_cpu, min(int(math.ceil(ncpu)), self.max_ncpu))

    def adjust_mem_gb(self, mem_gb: float) -> float:
        if self.max_mem_gb is None:
            return mem_gb
        return min(mem_gb, self.max_mem_gb)
