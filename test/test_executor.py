"""
Test running task graphs with real bash commands.
"""

import threading
import time
from pathlib import Path

from seqflow.exceptions import IndexBuildFailed
from seqflow.executor import TaskExecutor
from seqflow.reference import IndexState, ReferencePreparationGate
from seqflow.targets import ReferenceBundle
from seqflow.tasks import Artifact, TaskDescriptor, TaskGraph, TaskStatus


def _touch(name: str, out: Path, inputs: dict[str, str] | None = None, fail: bool = False, **kwargs) -> TaskDescriptor:
    cmd = 'false' if fail else 'touch {out}'
    if inputs:
        cmd = ' '.join(f'test -e {{{alias}}} &&' for alias in inputs) + ' ' + cmd
    return TaskDescriptor(
        name=name,
        command=cmd,
        inputs=inputs or {},
        outputs={'out': Artifact(name, out)},
        **kwargs,
    )


def test_run_in_dependency_order(tmp_path):
    out = tmp_path / 'out'
    graph = TaskGraph(
        [
            _touch('b', out / 'b.txt', inputs={'a': 'a'}),
            _touch('a', out / 'a.txt'),
            _touch('c', out / 'c.txt', inputs={'a': 'a', 'b': 'b'}),
        ],
    )
    executor = TaskExecutor(graph, workdir=tmp_path / 'work', max_workers=2)
    results = executor.run()

    assert {name: r.status for name, r in results.items()} == {
        'a': TaskStatus.SUCCEEDED,
        'b': TaskStatus.SUCCEEDED,
        'c': TaskStatus.SUCCEEDED,
    }
    assert results['a'].completed <= results['b'].started
    assert (out / 'c.txt').exists()

    task_dir = executor.task_dir(graph.tasks['a'])
    assert task_dir.parent == tmp_path / 'work' / 'tasks'
    assert 'set -euo pipefail' in (task_dir / '.command.sh').read_text()
    assert results['a'].log_path == task_dir / '.command.log'


def test_failure_skips_dependents_only(tmp_path):
    """
    S1 and S2 branches are independent: S1 QC fails, so the S1 report is skipped,
    while the whole S2 branch still succeeds.
    """
    out = tmp_path / 'out'
    graph = TaskGraph(
        [
            _touch('qc:S1', out / 'qc_S1', fail=True),
            _touch('report:S1', out / 'report_S1', inputs={'qc': 'qc:S1'}),
            _touch('final:S1', out / 'final_S1', inputs={'r': 'report:S1'}),
            _touch('qc:S2', out / 'qc_S2'),
            _touch('report:S2', out / 'report_S2', inputs={'qc': 'qc:S2'}),
        ],
    )
    results = TaskExecutor(graph, workdir=tmp_path / 'work', max_workers=2).run()

    assert results['qc:S1'].status == TaskStatus.FAILED
    assert results['qc:S1'].exit_code == 1
    assert results['report:S1'].status == TaskStatus.SKIPPED
    assert results['final:S1'].status == TaskStatus.SKIPPED
    assert results['final:S1'].started is None
    assert results['qc:S2'].status == TaskStatus.SUCCEEDED
    assert results['report:S2'].status == TaskStatus.SUCCEEDED
    assert not (out / 'report_S1').exists()


def test_missing_declared_output_fails_task(tmp_path):
    task = TaskDescriptor(name='lazy', command='true', outputs={'out': Artifact('lazy', tmp_path / 'never.txt')})
    results = TaskExecutor(TaskGraph([task]), workdir=tmp_path / 'work').run()
    assert results['lazy'].status == TaskStatus.FAILED
    assert results['lazy'].exit_code == 0
    assert 'never.txt' in results['lazy'].error


def test_independent_tasks_run_concurrently(tmp_path):
    running = []
    peak = []
    lock = threading.Lock()

    def runner(cmd: str, cwd: Path, log_path: Path) -> int:
        with lock:
            running.append(cwd)
            peak.append(len(running))
        time.sleep(0.2)
        for line in cmd.splitlines():
            if line.startswith('touch '):
                Path(line.split()[1]).touch()
        with lock:
            running.remove(cwd)
        return 0

    out = tmp_path / 'out'
    out.mkdir()
    graph = TaskGraph([_touch(f'qc:S{i}', out / f'S{i}') for i in range(4)])
    results = TaskExecutor(graph, workdir=tmp_path / 'work', max_workers=4, runner=runner).run()
    assert all(r.status == TaskStatus.SUCCEEDED for r in results.values())
    assert max(peak) > 1


def test_index_requests_go_through_gate(tmp_path):
    builds = []

    def builder(kind: str, fasta: Path, dest: Path) -> Path:
        builds.append(kind)
        dest.mkdir(parents=True)
        (dest / 'genome.idx').touch()
        return dest

    gate = ReferencePreparationGate(
        ReferenceBundle(fasta_path=tmp_path / 'genome.fa'),
        builder,
        outdir=tmp_path / 'results',
        workdir=tmp_path / 'work',
    )
    out = tmp_path / 'out'
    tasks = [
        TaskDescriptor(
            name=f'align:S{i}',
            command='test -e {index}/genome.idx && touch {bam}',
            outputs={'bam': Artifact(f'bam/S{i}', out / f'S{i}.bam')},
            indexes={'index': 'bwa'},
        )
        for i in range(3)
    ]
    results = TaskExecutor(TaskGraph(tasks), workdir=tmp_path / 'work', gate=gate, max_workers=3).run()
    assert all(r.status == TaskStatus.SUCCEEDED for r in results.values())
    assert builds == ['bwa']


def test_failed_index_fails_requesting_tasks(tmp_path):
    def builder(kind: str, fasta: Path, dest: Path) -> Path:
        raise IndexBuildFailed(kind, 'tool exited with code 1')

    gate = ReferencePreparationGate(
        ReferenceBundle(fasta_path=tmp_path / 'genome.fa'),
        builder,
        outdir=tmp_path / 'results',
        workdir=tmp_path / 'work',
    )
    out = tmp_path / 'out'
    graph = TaskGraph(
        [
            TaskDescriptor(
                name='align:S1',
                command='touch {bam}',
                outputs={'bam': Artifact('bam/S1', out / 'S1.bam')},
                indexes={'index': 'minimap2'},
            ),
            _touch('qc:S1', out / 'qc_S1'),
        ],
    )
    results = TaskExecutor(graph, workdir=tmp_path / 'work', gate=gate).run()
    assert results['align:S1'].status == TaskStatus.FAILED
    assert 'minimap2' in results['align:S1'].error
    assert results['qc:S1'].status == TaskStatus.SUCCEEDED


def test_unexpected_index_error_fails_requesting_tasks(tmp_path):
    def builder(kind: str, fasta: Path, dest: Path) -> Path:
        raise PermissionError(f'cannot create {dest}')

    gate = ReferencePreparationGate(
        ReferenceBundle(fasta_path=tmp_path / 'genome.fa'),
        builder,
        outdir=tmp_path / 'results',
        workdir=tmp_path / 'work',
    )
    out = tmp_path / 'out'
    graph = TaskGraph(
        [
            TaskDescriptor(
                name='align:S1',
                command='touch {bam}',
                outputs={'bam': Artifact('bam/S1', out / 'S1.bam')},
                indexes={'index': 'bwa'},
            ),
            _touch('qc:S1', out / 'qc_S1'),
        ],
    )
    results = TaskExecutor(graph, workdir=tmp_path / 'work', gate=gate, max_workers=2).run()
    assert results['align:S1'].status == TaskStatus.FAILED
    assert 'PermissionError' in results['align:S1'].error
    assert results['qc:S1'].status == TaskStatus.SUCCEEDED
    assert gate.state('bwa') == IndexState.FAILED


def test_os_error_fails_task(tmp_path):
    """
    Output directory can't be created because a file is in the way.
    """
    blocker = tmp_path / 'blocker'
    blocker.touch()
    out = tmp_path / 'out'
    graph = TaskGraph(
        [
            _touch('qc:S1', blocker / 'qc_S1'),
            _touch('report:S1', out / 'report_S1', inputs={'qc': 'qc:S1'}),
            _touch('qc:S2', out / 'qc_S2'),
        ],
    )
    results = TaskExecutor(graph, workdir=tmp_path / 'work').run()
    assert results['qc:S1'].status == TaskStatus.FAILED
    assert results['report:S1'].status == TaskStatus.SKIPPED
    assert results['qc:S2'].status == TaskStatus.SUCCEEDED


def test_task_dirs_are_unique(tmp_path):
    """
    Sample IDs differing only in case get separate task directories.
    """
    out = tmp_path / 'out'
    graph = TaskGraph([_touch('FastQC:S1', out / 'upper'), _touch('FastQC:s1', out / 'lower')])
    executor = TaskExecutor(graph, workdir=tmp_path / 'work', max_workers=2)
    assert executor.task_dir(graph.tasks['FastQC:S1']) != executor.task_dir(graph.tasks['FastQC:s1'])

    results = executor.run()
    assert results['FastQC:S1'].log_path != results['FastQC:s1'].log_path
    assert 'upper' in (executor.task_dir(graph.tasks['FastQC:S1']) / '.command.sh').read_text()
    assert 'lower' in (executor.task_dir(graph.tasks['FastQC:s1']) / '.command.sh').read_text()
