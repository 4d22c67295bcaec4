"""
Run outcome and execution trace.
"""

from collections import Counter
from enum import Enum
from pathlib import Path

import pandas as pd

from .tasks import TaskDescriptor, TaskResult, TaskStatus

TRACE_COLUMNS = [
    'task_id',
    'name',
    'stage',
    'target',
    'status',
    'exit',
    'start',
    'complete',
    'duration_s',
    'cpus',
    'memory_gb',
    'error',
    'log',
]


class RunOutcome(Enum):
    SUCCESS = 'success'
    PARTIAL = 'partial failure'
    FAILURE = 'failure'


def count_statuses(results: dict[str, TaskResult]) -> dict[TaskStatus, int]:
    counter = Counter(r.status for r in results.values())
    return {status: counter.get(status, 0) for status in TaskStatus}


def run_outcome(results: dict[str, TaskResult]) -> RunOutcome:
    """
    SUCCESS if no task failed; PARTIAL if some failed and some succeeded;
    FAILURE if tasks failed and none succeeded.
    """
    counts = count_statuses(results)
    if not counts[TaskStatus.FAILED]:
        return RunOutcome.SUCCESS
    if counts[TaskStatus.SUCCEEDED]:
        return RunOutcome.PARTIAL
    return RunOutcome.FAILURE


def write_trace(
    results: dict[str, TaskResult],
    tasks: dict[str, TaskDescriptor],
    path: Path,
) -> Path:
    """
    Write one line per task with its status, timing and resource hints.
    """
    rows = []
    for i, (name, r) in enumerate(results.items(), 1):
        task = tasks[name]
        rows.append(
            {
                'task_id': i,
                'name': name,
                'stage': task.attrs.get('stage', ''),
                'target': task.attrs.get('sample', task.attrs.get('cohort', '')),
                'status': r.status.value,
                'exit': r.exit_code,
                'start': r.started.isoformat(timespec='seconds') if r.started else None,
                'complete': r.completed.isoformat(timespec='seconds') if r.completed else None,
                'duration_s': r.duration_s,
                'cpus': task.resources.ncpu,
                'memory_gb': task.resources.mem_gb,
                'error': r.error,
                'log': str(r.log_path) if r.log_path else None,
            },
        )
    df = pd.DataFrame(rows, columns=TRACE_COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, sep='\t', index=False)
    return path
