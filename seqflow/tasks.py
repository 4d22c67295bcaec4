"""
Task descriptors and the task dependency graph.

A task is one invocation of an external command. It declares the artifacts it
reads and writes by logical name (e.g. "FastQC/S1/html_1"); the graph links a
task to the producers of its inputs. A graph that can't be satisfied (an input
nobody produces, two producers of the same artifact, a cycle) is rejected when
constructed, before anything runs.
"""

import shlex
import string
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping

import networkx as nx

from .exceptions import GraphError
from .resources import Resources

RESERVED_PLACEHOLDERS = ('ncpu', 'mem_gb')


@dataclass(frozen=True)
class Artifact:
    """
    A file or directory with a logical name.
    """

    name: str
    path: Path


@dataclass
class TaskDescriptor:
    """
    Declarative description of one external tool invocation.

    `command` is a template formatted with the aliases of `inputs`, `outputs`
    and `indexes` (each replaced by the corresponding path), plus `ncpu` and
    `mem_gb` from `resources`.
    """

    name: str
    command: str
    inputs: dict[str, str] = field(default_factory=dict)
    outputs: dict[str, Artifact] = field(default_factory=dict)
    indexes: dict[str, str] = field(default_factory=dict)
    resources: Resources = field(default_factory=Resources)
    attrs: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        aliases = [*self.inputs, *self.outputs, *self.indexes]
        if len(set(aliases)) != len(aliases):
            raise GraphError(f'{self.name}: input, output and index aliases must be unique: {aliases}')
        if clash := set(aliases) & set(RESERVED_PLACEHOLDERS):
            raise GraphError(f'{self.name}: aliases {sorted(clash)} are reserved')
        known = set(aliases) | set(RESERVED_PLACEHOLDERS)
        for _, placeholder, _, _ in string.Formatter().parse(self.command):
            if placeholder is None:
                continue
            if placeholder == '' or placeholder.isdigit():
                raise GraphError(f'{self.name}: positional placeholders are not supported in the command')
            if placeholder not in known:
                raise GraphError(
                    f'{self.name}: command placeholder "{{{placeholder}}}" is not an input, '
                    f'output or index alias. Known: {sorted(known)}'
                )

    def __str__(self):
        return self.name

    def render(self, paths: Mapping[str, Path], index_paths: Mapping[str, Path] | None = None) -> str:
        """
        Fill the command template. `paths` maps artifact names to paths of
        inputs; `index_paths` maps index kinds to resolved index directories.
        Paths are shell-quoted, so templates use placeholders unquoted.
        """
        values: dict[str, object] = {
            'ncpu': self.resources.ncpu,
            'mem_gb': self.resources.mem_gb or '',
        }
        for alias, artifact_name in self.inputs.items():
            values[alias] = shlex.quote(str(paths[artifact_name]))
        for alias, artifact in self.outputs.items():
            values[alias] = shlex.quote(str(artifact.path))
        for alias, kind in self.indexes.items():
            values[alias] = shlex.quote(str((index_paths or {})[kind]))
        return self.command.format(**values)


class TaskStatus(Enum):
    PENDING = 'pending'
    RUNNING = 'running'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    SKIPPED = 'skipped'


@dataclass
class TaskResult:
    """
    Final state of one task after the executor finished.
    """

    name: str
    status: TaskStatus = TaskStatus.PENDING
    exit_code: int | None = None
    error: str | None = None
    started: datetime | None = None
    completed: datetime | None = None
    log_path: Path | None = None

    @property
    def duration_s(self) -> float | None:
        if self.started and self.completed:
            return (self.completed - self.started).total_seconds()
        return None


class TaskGraph:
    """
    Dependency graph of tasks: an edge goes from the producer of an artifact to
    every task that reads it. `sources` are artifacts that exist before the run
    (input reads, reused outputs of earlier runs).
    """

    def __init__(
        self,
        tasks: Iterable[TaskDescriptor],
        sources: Iterable[Artifact] = (),
    ):
        self.tasks: dict[str, TaskDescriptor] = {}
        self.sources: dict[str, Path] = {a.name: a.path for a in sources}
        self.producers: dict[str, str] = {}
        self.dag = nx.DiGraph()

        for task in tasks:
            if task.name in self.tasks:
                raise GraphError(f'Duplicate task name: {task.name}')
            self.tasks[task.name] = task
            self.dag.add_node(task.name)
            for artifact in task.outputs.values():
                if artifact.name in self.producers:
                    raise GraphError(
                        f'Artifact {artifact.name} is produced by both '
                        f'{self.producers[artifact.name]} and {task.name}'
                    )
                if artifact.name in self.sources:
                    raise GraphError(f'Artifact {artifact.name} of {task.name} is already provided as a source')
                self.producers[artifact.name] = task.name

        for task in self.tasks.values():
            for artifact_name in task.inputs.values():
                if producer := self.producers.get(artifact_name):
                    self.dag.add_edge(producer, task.name)
                elif artifact_name not in self.sources:
                    raise GraphError(
                        f'{task.name}: input {artifact_name} is not produced by any task '
                        f'and is not provided as a source'
                    )

        if not nx.is_directed_acyclic_graph(self.dag):
            cycle = nx.find_cycle(self.dag)
            raise GraphError(f'Circular dependencies found between tasks: {cycle}')

    def __len__(self) -> int:
        return len(self.tasks)

    def order(self) -> list[str]:
        """
        Task names in an order respecting dependencies.
        """
        return list(nx.lexicographical_topological_sort(self.dag))

    def dependencies(self, name: str) -> set[str]:
        return set(self.dag.predecessors(name))

    def dependents(self, name: str) -> set[str]:
        """
        All tasks that depend on `name`, directly or transitively.
        """
        return nx.descendants(self.dag, name)

    def artifact_paths(self) -> dict[str, Path]:
        """
        Path of every known artifact, produced or provided.
        """
        paths = dict(self.sources)
        for task in self.tasks.values():
            paths |= {a.name: a.path for a in task.outputs.values()}
        return paths

    def index_kinds(self) -> set[str]:
        return {kind for task in self.tasks.values() for kind in task.indexes.values()}
