"""
Dependency-ordered execution of a `TaskGraph`.

Tasks run as bash subprocesses on a thread pool, so independent tasks (e.g. the
same stage for different samples) run concurrently. A task starts only after
every task producing its inputs has succeeded. A failed task never stops
unrelated branches: only its transitive dependents are marked skipped, and
never started.
"""

import hashlib
import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path
from typing import Callable

from .exceptions import IndexBuildFailed, TaskFailed
from .reference import ReferencePreparationGate
from .tasks import TaskDescriptor, TaskGraph, TaskResult, TaskStatus
from .utils import command, exists, run_command, slugify

Runner = Callable[[str, Path, Path], int]


class TaskExecutor:
    """
    Runs all tasks of a graph, each in its own directory `workdir/tasks/<task-slug>-<hash>`
    with the script in `.command.sh` and the output in `.command.log`.
    """

    def __init__(
        self,
        graph: TaskGraph,
        workdir: Path,
        gate: ReferencePreparationGate | None = None,
        max_workers: int = 1,
        runner: Runner = run_command,
    ):
        self.graph = graph
        self.workdir = workdir
        self.gate = gate
        self.max_workers = max_workers
        self.runner = runner
        self.results: dict[str, TaskResult] = {name: TaskResult(name) for name in graph.order()}

    def task_dir(self, task: TaskDescriptor) -> Path:
        """
        Readable slug of the task name, plus a hash of the exact name, since
        slugs of distinct names can coincide (e.g. `FastQC:S1` and `FastQC:s1`).
        """
        digest = hashlib.sha1(task.name.encode()).hexdigest()[:8]
        return self.workdir / 'tasks' / f'{slugify(task.name)}-{digest}'

    def _ready(self) -> list[str]:
        ready = []
        for name, result in self.results.items():
            if result.status != TaskStatus.PENDING:
                continue
            deps = self.graph.dependencies(name)
            if all(self.results[d].status == TaskStatus.SUCCEEDED for d in deps):
                ready.append(name)
        return ready

    def _skip_dependents(self, name: str) -> None:
        for dependent in sorted(self.graph.dependents(name)):
            result = self.results[dependent]
            if result.status == TaskStatus.PENDING:
                logging.warning(f'{dependent} [SKIPPED] (depends on failed {name})')
                result.status = TaskStatus.SKIPPED
                result.error = f'upstream task {name} failed'

    def run(self) -> dict[str, TaskResult]:
        """
        Run every task, returning results indexed by task name.
        """
        logging.info(f'Running {len(self.graph)} tasks with up to {self.max_workers} in parallel')
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='task') as pool:
            running: dict[Future, str] = {}
            while True:
                for name in self._ready():
                    self.results[name].status = TaskStatus.RUNNING
                    running[pool.submit(self._run_task, self.graph.tasks[name])] = name

                if not running:
                    break

                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    name = running.pop(future)
                    result = future.result()
                    self.results[name] = result
                    if result.status == TaskStatus.FAILED:
                        self._skip_dependents(name)

        stuck = [n for n, r in self.results.items() if r.status == TaskStatus.PENDING]
        assert not stuck, f'Tasks never became ready: {stuck}'
        return self.results

    def _run_task(self, task: TaskDescriptor) -> TaskResult:
        result = TaskResult(task.name, status=TaskStatus.RUNNING, started=datetime.now())
        task_dir = self.task_dir(task)
        result.log_path = task_dir / '.command.log'
        try:
            index_paths = {}
            for kind in task.indexes.values():
                if self.gate is None:
                    raise IndexBuildFailed(kind, 'no reference gate configured')
                index_paths[kind] = self.gate.request(kind)

            cmd = task.render(self.graph.artifact_paths(), index_paths)
            for artifact in task.outputs.values():
                artifact.path.parent.mkdir(parents=True, exist_ok=True)

            logging.info(f'{task.name} [RUNNING] ({task.resources})')
            result.exit_code = self.runner(command(cmd), task_dir, result.log_path)
            if result.exit_code != 0:
                raise TaskFailed(
                    task.name,
                    f'exited with code {result.exit_code}, see {result.log_path}',
                    exit_code=result.exit_code,
                )
            if missing := [str(a.path) for a in task.outputs.values() if not exists(a.path)]:
                raise TaskFailed(task.name, f'declared outputs were not produced: {", ".join(missing)}')
        except (TaskFailed, IndexBuildFailed) as e:
            logging.error(f'{task.name} [FAILED] {e}')
            result.status = TaskStatus.FAILED
            result.error = str(e)
        except OSError as e:
            logging.error(f'{task.name} [FAILED] {type(e).__name__}: {e}')
            result.status = TaskStatus.FAILED
            result.error = f'{type(e).__name__}: {e}'
        else:
            logging.info(f'{task.name} [SUCCEEDED]')
            result.status = TaskStatus.SUCCEEDED
        result.completed = datetime.now()
        return result
