"""
Reference index preparation.

`ReferencePreparationGate` decides, once per index kind, whether an index has
to be built or can be taken from the run configuration, and publishes the
result to every stage requesting it. However many tasks request the same kind
concurrently, at most one build is ever in flight for it.
"""

import logging
import shlex
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from .exceptions import IndexBuildFailed
from .resources import Resources
from .targets import ReferenceBundle
from .utils import command, run_command


class IndexState(Enum):
    """
    Lifecycle of one index kind.
    """

    UNRESOLVED = 1
    BUILDING = 2
    READY = 3
    FAILED = 4


@dataclass(frozen=True)
class IndexRecipe:
    """
    How to build an index of a specific kind. `command` is formatted with
    `fasta`, `dest` (the index directory), `prefix` (FASTA file name) and `ncpu`.
    """

    kind: str
    tool: str
    command: str
    resources: Resources = Resources()


INDEX_RECIPES: dict[str, IndexRecipe] = {
    'bwa': IndexRecipe(
        kind='bwa',
        tool='bwa',
        command="""
        mkdir -p {dest}
        bwa index -p {dest}/{prefix} {fasta}
        """,
        resources=Resources(ncpu=1, mem_gb=16),
    ),
    'minimap2': IndexRecipe(
        kind='minimap2',
        tool='minimap2',
        command="""
        mkdir -p {dest}
        minimap2 -t {ncpu} -d {dest}/{prefix}.mmi {fasta}
        """,
        resources=Resources(ncpu=4, mem_gb=16),
    ),
}

IndexBuilder = Callable[[str, Path, Path], Path]


class CommandIndexBuilder:
    """
    Builds an index by running the recipe command for its kind. Logs go to
    `log_dir/<kind>/.command.log`.
    """

    def __init__(self, log_dir: Path, recipes: dict[str, IndexRecipe] | None = None):
        self.log_dir = log_dir
        self.recipes = recipes or INDEX_RECIPES

    def __call__(self, kind: str, fasta: Path, dest: Path) -> Path:
        if kind not in self.recipes:
            raise IndexBuildFailed(kind, f'no recipe to build this index kind. Known: {", ".join(self.recipes)}')
        recipe = self.recipes[kind]
        cmd = recipe.command.format(
            fasta=shlex.quote(str(fasta)),
            dest=shlex.quote(str(dest)),
            prefix=shlex.quote(fasta.name),
            ncpu=recipe.resources.ncpu,
        )
        task_dir = self.log_dir / kind
        task_dir.mkdir(parents=True, exist_ok=True)
        log_path = task_dir / '.command.log'
        logging.info(f'Building {kind} index for {fasta} in {dest}')
        exit_code = run_command(command(cmd), cwd=task_dir, log_path=log_path)
        if exit_code != 0:
            raise IndexBuildFailed(kind, f'{recipe.tool} exited with code {exit_code}, see {log_path}')
        if not dest.is_dir() or not any(dest.iterdir()):
            raise IndexBuildFailed(kind, f'{recipe.tool} did not produce any files in {dest}')
        return dest


class ReferencePreparationGate:
    """
    Resolves reference indexes for all consumers of the run.

    Kinds already present in `bundle.index_paths` are READY from the start and
    never built. Any other kind is built on the first request; concurrent
    requests wait for that build. A failed build is terminal for the kind:
    every request for it raises `IndexBuildFailed`.
    """

    def __init__(
        self,
        bundle: ReferenceBundle,
        builder: IndexBuilder,
        outdir: Path,
        workdir: Path,
    ):
        self.bundle = bundle
        self.builder = builder
        self.outdir = outdir
        self.workdir = workdir
        self._lock = threading.Lock()
        self._states: dict[str, IndexState] = {kind: IndexState.READY for kind in bundle.index_paths}
        self._builds: dict[str, Future] = {}

    def state(self, kind: str) -> IndexState:
        with self._lock:
            return self._states.get(kind, IndexState.UNRESOLVED)

    def dest_dir(self, kind: str) -> Path:
        """
        Where a freshly built index goes: the output directory if the bundle
        asks to keep generated indexes, otherwise the work directory.
        """
        base = self.outdir if self.bundle.persist_generated_index else self.workdir
        return base / 'genome' / kind

    def request(self, kind: str) -> Path:
        """
        Path to the index of this kind, building it first if needed.
        Blocks while another thread builds the same kind.
        """
        with self._lock:
            if self._states.get(kind) == IndexState.READY and kind not in self._builds:
                return self.bundle.index_paths[kind]
            future = self._builds.get(kind)
            is_builder = future is None
            if future is None:
                future = Future()
                self._builds[kind] = future
                self._states[kind] = IndexState.BUILDING

        if is_builder:
            self._build(kind, future)
        else:
            logging.debug(f'Waiting for the {kind} index being built')
        return future.result()

    def _build(self, kind: str, future: Future) -> None:
        try:
            path = self.builder(kind, self.bundle.fasta_path, self.dest_dir(kind))
        except IndexBuildFailed as e:
            logging.error(str(e))
            with self._lock:
                self._states[kind] = IndexState.FAILED
            future.set_exception(e)
            return
        except Exception as e:
            error = IndexBuildFailed(kind, f'{type(e).__name__}: {e}')
            logging.exception(str(error))
            with self._lock:
                self._states[kind] = IndexState.FAILED
            future.set_exception(error)
            return

        with self._lock:
            self.bundle.index_paths[kind] = path
            self._states[kind] = IndexState.READY
        logging.info(f'{kind} index is ready: {path}')
        future.set_result(path)
