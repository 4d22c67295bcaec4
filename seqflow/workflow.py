"""
Provides a `Workflow` class and a `@stage` decorator that allow to define workflows
in a declarative fashion.

A `Stage` object is responsible for creating task descriptors and declaring
outputs that are expected to be produced. Each stage acts on a `Target`, which
can be a `SampleRecord` or a `Cohort` (all samples of the run together). Sample
stages only see the samples routed to them: e.g. a stage declared with
`routing='long-read-qc'` never sees short-read samples. A `Workflow` object plugs
stages together, turns them into a task graph and executes it.

New stages are added by declaring them, e.g.:

@stage(required_stages=[FastQC], routing='short-read-qc')
class MyStage(SampleStage):
    def expected_outputs(self, sample: SampleRecord) -> dict[str, Path]:
        ...
    def queue_tasks(self, sample: SampleRecord, inputs: StageInput) -> StageOutput | None:
        ...
"""

import functools
import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Callable, Generic, Mapping, Optional, Sequence, Type, TypeVar, Union

import networkx as nx

from .config import RunConfig
from .exceptions import ConfigurationError, StageInputNotFoundError, WorkflowError
from .executor import Runner, TaskExecutor
from .manifest import validate_manifest, write_manifest
from .reference import CommandIndexBuilder, IndexBuilder, ReferencePreparationGate
from .routing import DEFAULT_TARGETS, Predicate, fan_out, route
from .slack import notify_completion
from .status import RunOutcome, count_statuses, run_outcome, write_trace
from .summary import RunSummary
from .targets import Cohort, SampleRecord, Target
from .tasks import Artifact, TaskDescriptor, TaskGraph, TaskResult, TaskStatus
from .utils import exists, run_command, slugify, timestamp

StageDecorator = Callable[..., 'Stage']

# Type variable to use with Generic to make sure a Stage subclass always matches the
# corresponding Target subclass.
TargetT = TypeVar('TargetT', bound=Target)


def artifact_name(stage_name: str, target_id: str, key: str) -> str:
    """
    Logical name of one stage output, e.g. "FastQC/S1/html_1".
    """
    return f'{stage_name}/{target_id}/{key}'


# noinspection PyShadowingNames
class StageOutput:
    """
    Represents a result of a specific stage, which was run on a specific target:
    a dict of output paths, and the tasks producing them.
    """

    def __init__(
        self,
        target: Target,
        data: dict[str, Path] | None = None,
        tasks: Sequence[TaskDescriptor] | TaskDescriptor | None = None,
        reusable: bool = False,
        skipped: bool = False,
        stage: Optional['Stage'] = None,
    ):
        self.data: dict[str, Path] = data or {}
        self.stage = stage
        self.target = target
        self.tasks: list[TaskDescriptor] = [tasks] if isinstance(tasks, TaskDescriptor) else list(tasks or [])
        self.reusable = reusable
        self.skipped = skipped

    def __repr__(self) -> str:
        res = (
            f'StageOutput({self.data}'
            f' target={self.target}'
            f' stage={self.stage}'
            + (' [reusable]' if self.reusable else '')
            + (' [skipped]' if self.skipped else '')
            + ')'
        )
        return res

    def artifact(self, key: str) -> str:
        if self.stage is None:
            raise ValueError(f'{self}: output is not bound to a stage')
        if key not in self.data:
            raise ValueError(f'{self.stage}: no output "{key}" for {self.target}. Available: {list(self.data)}')
        return artifact_name(self.stage.name, self.target.target_id, key)

    def artifacts(self) -> dict[str, Artifact]:
        """
        All outputs as artifacts, indexed by output key.
        """
        return {key: Artifact(self.artifact(key), path) for key, path in self.data.items()}

    def as_path(self, key: str) -> Path:
        if key not in self.data:
            raise ValueError(f'{self.stage}: no output "{key}" for {self.target}')
        return self.data[key]


# noinspection PyShadowingNames
class StageInput:
    """
    Represents an input for a stage run. It wraps the outputs of all required upstream
    stages for corresponding targets (e.g. all FastQC reports for a MultiQC stage).

    An object of this class is passed to the public `queue_tasks` method of a Stage,
    and can be used to query artifact names and paths of dependencies.
    """

    def __init__(self, stage: 'Stage'):
        self.stage = stage
        self._outputs_by_target_by_stage: dict[str, dict[str, StageOutput]] = {}

    def add_other_stage_output(self, output: StageOutput):
        """
        Add output from another stage run.
        """
        assert output.stage is not None, output
        if not output.data:
            return
        stage_name = output.stage.name
        if stage_name not in self._outputs_by_target_by_stage:
            self._outputs_by_target_by_stage[stage_name] = dict()
        self._outputs_by_target_by_stage[stage_name][output.target.target_id] = output

    def _each(self, fun: Callable, stage: StageDecorator, optional: bool = False) -> dict:
        if stage.__name__ not in [s.name for s in self.stage.required_stages]:
            raise WorkflowError(
                f'{self.stage.name}: getting inputs from stage {stage.__name__}, '
                f'but {stage.__name__} is not listed in required_stages. '
                f'Consider adding it into the decorator: '
                f'@stage(required_stages=[{stage.__name__}])',
            )

        if stage.__name__ not in self._outputs_by_target_by_stage:
            if optional:
                return {}
            raise StageInputNotFoundError(
                f'No inputs from {stage.__name__} for {self.stage.name} found. '
                f'Check the logs if {stage.__name__} was skipped, or no samples were routed to it',
            )

        return {trg: fun(result) for trg, result in self._outputs_by_target_by_stage[stage.__name__].items()}

    def as_artifacts_by_target(self, stage: StageDecorator, optional: bool = False) -> dict[str, dict[str, Artifact]]:
        """
        Get a dict of artifacts for a specific stage, indexed by target
        """
        return self._each(fun=(lambda r: r.artifacts()), stage=stage, optional=optional)

    def _get(self, target: Target, stage: StageDecorator) -> StageOutput:
        if not self._outputs_by_target_by_stage.get(stage.__name__):
            raise StageInputNotFoundError(
                f'Not found output from stage {stage.__name__}, required for stage '
                f'{self.stage.name}. Is {stage.__name__} in the `required_stages` '
                f'decorator? Available: {list(self._outputs_by_target_by_stage)}',
            )
        if not (output := self._outputs_by_target_by_stage[stage.__name__].get(target.target_id)):
            raise StageInputNotFoundError(
                f'Not found output for {target} from stage {stage.__name__}, required for stage {self.stage.name}',
            )
        return output

    def as_path(self, target: Target, stage: StageDecorator, key: str) -> Path:
        """
        Path to one output of an upstream stage for a target.
        """
        return self._get(target=target, stage=stage).as_path(key)


class Action(Enum):
    """
    Indicates what a stage should do with a specific target.
    """

    QUEUE = 1
    SKIP = 2
    REUSE = 3


class Stage(Generic[TargetT], ABC):
    """
    Abstract class for a workflow stage. Parametrised by specific Target subclass,
    i.e. SampleStage(Stage[SampleRecord]) should only be able to work on SampleRecord(Target).
    """

    # Tool name to a command printing its version, collected by SoftwareVersions
    versions: dict[str, str] = {}

    def __init__(
        self,
        workflow: 'Workflow',
        name: str,
        required_stages: list[StageDecorator] | StageDecorator | None = None,
        routing: str | None = None,
        skipped: bool = False,
        forced: bool = False,
    ):
        self.workflow = workflow
        self._name = name
        self.required_stages_classes: list[StageDecorator] = []
        if required_stages:
            if isinstance(required_stages, list):
                self.required_stages_classes.extend(required_stages)
            else:
                self.required_stages_classes.append(required_stages)

        # Dependencies. Populated in workflow.set_stages(), after we know all stages.
        self.required_stages: list[Stage] = []

        if routing is not None and routing not in workflow.predicates:
            raise WorkflowError(
                f'{name}: unknown routing target "{routing}". Available: {", ".join(workflow.predicates)}',
            )
        self.routing = routing

        # Populated with the return value of `queue_for_cohort()`
        self.output_by_target: dict[str, StageOutput | None] = dict()

        self.skipped = skipped
        self.forced = forced

    @property
    def config(self) -> RunConfig:
        return self.workflow.config

    @property
    def prefix(self) -> Path:
        return self.config.outdir / self.name.lower()

    def __str__(self):
        res = f'{self._name}'
        if self.skipped:
            res += ' [skipped]'
        if self.forced:
            res += ' [forced]'
        if self.required_stages:
            res += f' <- [{", ".join([s.name for s in self.required_stages])}]'
        return res

    @property
    def name(self) -> str:
        """
        Stage name (unique and descriptive stage)
        """
        return self._name

    @abstractmethod
    def queue_tasks(self, target: TargetT, inputs: StageInput) -> StageOutput | None:
        """
        Declares tasks that process `target`.
        Assumes that all the household work is done: checking for possible
        reuse of existing outputs.
        """

    @abstractmethod
    def expected_outputs(self, target: TargetT) -> dict[str, Path]:
        """
        Get paths to files that the stage is expected to generate for a `target`,
        indexed by output key. Used within `queue_tasks()` to pass paths to outputs
        to task commands, as well as by the workflow to check if the stage's
        expected outputs already exist and can be reused.
        """

    @abstractmethod
    def queue_for_cohort(self, cohort: Cohort) -> dict[str, StageOutput | None]:
        """
        Queues tasks for each corresponding target, defined by Stage subclass.

        Returns a dictionary of `StageOutput` objects indexed by target unique_id.
        """

    def _make_inputs(self) -> StageInput:
        """
        Collects outputs from all dependencies and create input for this stage
        """
        inputs = StageInput(self)
        for prev_stage in self.required_stages:
            for _, stage_output in prev_stage.output_by_target.items():
                if stage_output:
                    inputs.add_other_stage_output(stage_output)
        return inputs

    def make_outputs(
        self,
        target: Target,
        data: dict[str, Path] | None = None,
        tasks: Sequence[TaskDescriptor] | TaskDescriptor | None = None,
        reusable: bool = False,
        skipped: bool = False,
    ) -> StageOutput:
        """
        Create StageOutput for this stage.
        """
        return StageOutput(
            target=target,
            data=data,
            tasks=tasks,
            reusable=reusable,
            skipped=skipped,
            stage=self,
        )

    def make_task(
        self,
        target: Target,
        command: str,
        inputs: dict[str, str] | None = None,
        outputs: dict[str, Path] | None = None,
        indexes: dict[str, str] | None = None,
        ncpu: int | None = None,
        mem_gb: float | None = None,
        suffix: str | None = None,
    ) -> TaskDescriptor:
        """
        Create a task descriptor for `target`. Keys of `outputs` are both the
        command placeholders and the output keys of the stage, so must match
        `expected_outputs()`. Resource hints are capped at the run maximum.
        """
        name = f'{self.name}:{target.target_id}' + (f':{suffix}' if suffix else '')
        return TaskDescriptor(
            name=name,
            command=command,
            inputs=inputs or {},
            outputs={
                key: Artifact(artifact_name(self.name, target.target_id, key), path)
                for key, path in (outputs or {}).items()
            },
            indexes=indexes or {},
            resources=self.config.limits.request_resources(ncpu=ncpu, mem_gb=mem_gb),
            attrs=self.get_job_attrs(target),
        )

    def _queue_tasks_with_checks(
        self,
        target: TargetT,
        action: Action | None = None,
    ) -> StageOutput | None:
        """
        Checks what to do with target, and either queue tasks, or skip/reuse results.
        """
        if not action:
            action = self._get_action(target)

        if action == Action.QUEUE:
            outputs = self.queue_tasks(target, self._make_inputs())
        elif action == Action.REUSE:
            outputs = self.make_outputs(
                target=target,
                data=self.expected_outputs(target),
                reusable=True,
            )
        else:  # Action.SKIP
            outputs = None

        if not outputs:
            return None

        outputs.stage = self
        return outputs

    def _get_action(self, target: TargetT) -> Action:
        """
        Based on stage parameters and expected outputs existence, determines what
        to do with the target: queue, skip or reuse.
        """
        expected_out = self.expected_outputs(target)
        reusable, first_missing_path = self._is_reusable(expected_out)

        if self.skipped:
            if reusable and not first_missing_path:
                logging.info(f'{self.name}: {target} [REUSE] (stage skipped, and outputs exist)')
                return Action.REUSE
            logging.info(
                f'{self.name}: {target} [SKIP] (stage skipped, and the following expected '
                f'outputs do not exist: {first_missing_path})',
            )
            return Action.SKIP

        if reusable and not first_missing_path:
            if self.forced:
                logging.info(f'{self.name}: {target} [QUEUE] (can reuse, but forcing the stage to rerun)')
                return Action.QUEUE
            logging.info(f'{self.name}: {target} [REUSE] (expected outputs exist: {expected_out})')
            return Action.REUSE

        logging.info(f'{self.name}: {target} [QUEUE]')
        return Action.QUEUE

    def _is_reusable(self, expected_out: dict[str, Path]) -> tuple[bool, Path | None]:
        """
        Checks if the outputs of the stage already exist, and can be reused.

        Returns:
            tuple[bool, Path | None]:
                bool: True if the outputs can be reused, False otherwise
                Path | None: first missing path, if any
        """
        if not expected_out:
            # Nothing to produce, so nothing to run.
            logging.debug(f'{self.name}: no expected outputs, assuming outputs exist')
            return True, None

        if not self.config.check_expected_outputs:
            # Do not check the files' existence, assume they don't exist
            return False, None

        if first_missing_path := next((p for p in expected_out.values() if not exists(p)), None):
            logging.debug(f'{expected_out} is not reusable, {first_missing_path} is missing')
            return False, first_missing_path
        return True, None

    def get_job_attrs(self, target: Target | None = None) -> dict[str, str]:
        """
        Create task attributes dictionary
        """
        job_attrs = dict(stage=self.name)
        if target:
            job_attrs |= target.get_job_attrs()
        return job_attrs


def stage(
    cls: Optional[Type['Stage']] = None,
    *,
    required_stages: list[StageDecorator] | StageDecorator | None = None,
    routing: str | None = None,
    skipped: bool = False,
    forced: bool = False,
) -> Union[StageDecorator, Callable[..., StageDecorator]]:
    """
    Implements a standard class decorator pattern with optional arguments.
    The goal is to allow declaring workflow stages without requiring to implement
    a constructor method. E.g.

    @stage(required_stages=[FastQC], forced=True)
    class MultiQC(CohortStage):
        def expected_outputs(self, cohort: Cohort):
            ...
        def queue_tasks(self, cohort: Cohort, inputs: StageInput) -> StageOutput:
            ...

    @required_stages: list of other stage classes that are required prerequisites
        for this stage. Outputs of those stages will be passed to
        `Stage.queue_tasks(... , inputs)` as `inputs`, and dependencies between
        tasks follow from the artifacts they read.
    @routing: name of the routing target a sample stage is applied to. Samples
        not routed to this target are not processed by the stage.
    @skipped: always skip this stage.
    @forced: always force run this stage, regardless of the outputs' existence.
    """

    def decorator_stage(_cls) -> StageDecorator:
        """Implements decorator."""

        @functools.wraps(_cls)
        def wrapper_stage(workflow: 'Workflow') -> Stage:
            """Decorator helper function."""
            return _cls(
                workflow=workflow,
                name=_cls.__name__,
                required_stages=required_stages,
                routing=routing,
                skipped=skipped,
                forced=forced,
            )

        return wrapper_stage

    if cls is None:
        return decorator_stage
    else:
        return decorator_stage(cls)


class Workflow:
    """
    Validates the sample manifest, resolves stages, builds the task graph and runs
    it. Owns the run summary and the reference preparation gate.
    """

    def __init__(
        self,
        config: RunConfig,
        stages: list[StageDecorator] | None = None,
        predicates: Mapping[str, Predicate] | None = None,
        index_builder: IndexBuilder | None = None,
        runner: Runner = run_command,
    ):
        self.config = config
        self.name = slugify(config.name)
        self.run_timestamp: str = timestamp()
        self.dry_run = config.dry_run
        self.predicates: Mapping[str, Predicate] = predicates or DEFAULT_TARGETS
        self.runner = runner

        self.summary = RunSummary(title=config.name)
        self.gate = ReferencePreparationGate(
            bundle=config.reference_bundle(),
            builder=index_builder or CommandIndexBuilder(config.workdir / 'genome-build'),
            outdir=config.outdir,
            workdir=config.workdir,
        )

        self._stages: list[StageDecorator] | None = stages
        self.cohort: Cohort | None = None
        self.routes: dict[str, frozenset[str]] = {}
        self.queued_stages: list[Stage] = []
        self.graph: TaskGraph | None = None
        self.results: dict[str, TaskResult] = {}

    def samples_for(self, routing: str | None) -> list[SampleRecord]:
        """
        Samples of the run routed to `routing`, or all samples when it's None.
        """
        assert self.cohort is not None
        return [s for s in self.cohort.get_samples() if routing is None or routing in self.routes[s.sample_id]]

    def run(self, stages: list[StageDecorator] | None = None) -> RunOutcome:
        """
        Validate inputs, resolve stages, build and execute the task graph.
        Configuration and manifest errors are raised before any task starts.
        """
        _stages = stages or self._stages
        if not _stages:
            raise WorkflowError('No stages added')

        self.summary.update(self._config_summary())
        self.load_samples()
        self.set_stages(_stages)
        self.graph = self.build_graph()

        if self.dry_run:
            logging.info('Dry run: not executing tasks. Tasks in order of execution:')
            for name in self.graph.order():
                deps = sorted(self.graph.dependencies(name))
                logging.info(f'  {name}' + (f' <- {deps}' if deps else ''))
            self.summary.add('Dry Run', True)
            self.summary.complete(success=True)
            return RunOutcome.SUCCESS

        executor = TaskExecutor(
            self.graph,
            workdir=self.config.workdir,
            gate=self.gate,
            max_workers=self.config.max_workers,
            runner=self.runner,
        )
        self.results = executor.run()
        return self.finish()

    def load_samples(self) -> Cohort:
        """
        Validate the manifest and route the samples. Raises on any manifest
        error, so no stage ever sees a partially valid manifest.
        """
        samples = validate_manifest(self.config.input, duplicate_samples=self.config.duplicate_samples)
        self.cohort = Cohort(self.name, samples)
        logging.info(f'Samples: {", ".join(self.cohort.get_sample_ids())}')
        self.routes = {s.sample_id: route(s, self.predicates) for s in samples}
        for target, routed in fan_out(samples, self.predicates).items():
            logging.info(f'Routing target {target}: {len(routed)} samples')
        write_manifest(samples, self.config.pipeline_info_dir / 'samplesheet.valid.csv')
        self.summary.add('Samples', len(samples))
        return self.cohort

    def _config_summary(self) -> dict:
        c = self.config
        max_memory = f', {c.limits.max_mem_gb:g} GB' if c.limits.max_mem_gb else ''
        return {
            'Run Name': c.name,
            'Run Timestamp': self.run_timestamp,
            'Input': c.input,
            'Genome': c.genome,
            'Fasta': c.fasta,
            'BWA Index': c.index_paths.get('bwa'),
            'Minimap2 Index': c.index_paths.get('minimap2'),
            'Save Reference': c.save_reference,
            'Skipped Stages': c.skip_stages,
            'Max Resources': f'{c.limits.max_ncpu} cpus{max_memory}',
            'Max Workers': c.max_workers,
            'Output Dir': c.outdir,
            'Working Dir': c.workdir,
            'Launch Dir': Path.cwd(),
            'User': os.environ.get('USER'),
            'Config Files': [str(p) for p in c.config_paths],
        }

    def set_stages(self, requested_stages: list[StageDecorator]) -> list[Stage]:
        """
        Instantiate requested stages and all stages they implicitly require,
        and order them so that every stage comes after its requirements.
        """
        skip_stages = self.config.skip_stages
        logging.info(f'End stages for the workflow "{self.name}": {[cls.__name__ for cls in requested_stages]}')
        logging.info(f'  workflow/skip_stages: {skip_stages}')

        # Round 1: initialising stage objects.
        _stages_d: dict[str, Stage] = {}
        for cls in requested_stages:
            if cls.__name__ in _stages_d:
                continue
            _stages_d[cls.__name__] = cls(self)

        # Round 2: depth search to find implicit stages.
        while True:  # might require few iterations to resolve dependencies recursively
            newly_implicitly_added_d = dict()
            for stg in _stages_d.values():
                for reqcls in stg.required_stages_classes:
                    if reqcls.__name__ in _stages_d or reqcls.__name__ in newly_implicitly_added_d:
                        continue
                    reqstg = reqcls(self)
                    newly_implicitly_added_d[reqstg.name] = reqstg

            if newly_implicitly_added_d:
                logging.info(f'Additional implicit stages: {list(newly_implicitly_added_d.keys())}')
                _stages_d |= newly_implicitly_added_d
            else:
                # No new implicit stages added, so can stop the depth-search here
                break

        lower_names = {name.lower(): stg for name, stg in _stages_d.items()}
        for s_name in skip_stages:
            if s_name.lower() not in lower_names:
                raise ConfigurationError(
                    'skip_stages',
                    f'"{s_name}" must be a stage name from the available list: {", ".join(_stages_d)}',
                )
            lower_names[s_name.lower()].skipped = True

        # Round 3: set "stage.required_stages" fields to each stage.
        for stg in _stages_d.values():
            stg.required_stages = [
                _stages_d[cls.__name__] for cls in stg.required_stages_classes if cls.__name__ in _stages_d
            ]

        # Round 4: determining order of execution.
        dag = nx.DiGraph()
        for stg in _stages_d.values():
            dag.add_node(stg.name)
            for dep in stg.required_stages:
                dag.add_edge(dep.name, stg.name)
        try:
            stage_names = list(nx.lexicographical_topological_sort(dag))
        except nx.NetworkXUnfeasible:
            logging.error('Circular dependencies found between stages')
            raise

        logging.info(f'Stages in order of execution:\n{stage_names}')
        stages = [_stages_d[name] for name in stage_names]

        if not [s.name for s in stages if not s.skipped]:
            raise WorkflowError('No stages to run')

        if required_skipped_stages := [s for s in stages if s.skipped]:
            logging.info(f'Skipped stages: {", ".join(s.name for s in required_skipped_stages)}')

        self.queued_stages = stages
        return stages

    def build_graph(self) -> TaskGraph:
        """
        Let every stage declare its tasks, then link them into a task graph.
        Input reads and reused outputs are the source artifacts of the graph.
        """
        assert self.cohort is not None
        sources: list[Artifact] = []
        for sample in self.cohort.get_samples():
            sources.extend(Artifact(name, path) for name, path in sample.read_artifacts().items())

        tasks: list[TaskDescriptor] = []
        for i, stg in enumerate(self.queued_stages):
            logging.info('*' * 60)
            logging.info(f'Stage #{i + 1}: {stg}')
            stg.output_by_target = stg.queue_for_cohort(self.cohort)
            for output in stg.output_by_target.values():
                if not output:
                    continue
                if output.reusable:
                    sources.extend(output.artifacts().values())
                tasks.extend(output.tasks)

        graph = TaskGraph(tasks, sources=sources)
        logging.info(f'Task graph: {len(graph)} tasks, {len(sources)} source artifacts')
        if kinds := graph.index_kinds():
            logging.info(f'Reference indexes requested: {", ".join(sorted(kinds))}')
        return graph

    def finish(self) -> RunOutcome:
        """
        Record the outcome: execution trace, completed summary, reports and
        the completion notification.
        """
        assert self.graph is not None
        outcome = run_outcome(self.results)
        counts = count_statuses(self.results)
        write_trace(self.results, self.graph.tasks, self.config.pipeline_info_dir / 'execution_trace.tsv')
        self.summary.complete(
            success=outcome == RunOutcome.SUCCESS,
            extra={
                'Tasks Succeeded': counts[TaskStatus.SUCCEEDED],
                'Tasks Failed': counts[TaskStatus.FAILED],
                'Tasks Skipped': counts[TaskStatus.SKIPPED],
                'Run Status': outcome.value,
            },
        )
        for path in self.summary.write(self.config.pipeline_info_dir):
            logging.info(f'Wrote {path}')
        notify_completion(self.summary, self.config.slack_channel)

        log = logging.info if outcome == RunOutcome.SUCCESS else logging.error
        log(
            f'Workflow {self.name} finished: {outcome.value} '
            f'({counts[TaskStatus.SUCCEEDED]} succeeded, {counts[TaskStatus.FAILED]} failed, '
            f'{counts[TaskStatus.SKIPPED]} skipped)',
        )
        return outcome


class SampleStage(Stage[SampleRecord], ABC):
    """
    Sample level stage.
    """

    @abstractmethod
    def expected_outputs(self, sample: SampleRecord) -> dict[str, Path]:
        """
        Override to declare expected output paths.
        """

    @abstractmethod
    def queue_tasks(self, sample: SampleRecord, inputs: StageInput) -> StageOutput | None:
        """
        Override to declare tasks.
        """

    def queue_for_cohort(self, cohort: Cohort) -> dict[str, StageOutput | None]:
        """
        Plug the stage into the workflow.
        """
        output_by_target: dict[str, StageOutput | None] = dict()
        if not (samples := self.workflow.samples_for(self.routing)):
            logging.info(f'{self.name}: no samples routed to "{self.routing}"')
            return output_by_target

        for sample in samples:
            action = self._get_action(sample)
            output_by_target[sample.target_id] = self._queue_tasks_with_checks(sample, action)
        return output_by_target


class CohortStage(Stage[Cohort], ABC):
    """
    Cohort-level stage (all samples of a workflow run).
    """

    @abstractmethod
    def expected_outputs(self, cohort: Cohort) -> dict[str, Path]:
        """
        Override to declare expected output paths.
        """

    @abstractmethod
    def queue_tasks(self, cohort: Cohort, inputs: StageInput) -> StageOutput | None:
        """
        Override to declare tasks.
        """

    def queue_for_cohort(self, cohort: Cohort) -> dict[str, StageOutput | None]:
        """
        Plug the stage into the workflow.
        """
        action = self._get_action(cohort)
        logging.info(f'{self.name}: {cohort} [{action.name}]')
        return {cohort.target_id: self._queue_tasks_with_checks(cohort, action)}
