"""
Targets for workflow stages: SampleRecord, Cohort. And the reference bundle
shared by all alignment stages.
"""

from dataclasses import dataclass, field
from pathlib import Path


class Target:
    """
    Defines a target that a stage can act upon.
    """

    @property
    def target_id(self) -> str:
        """
        ID should be unique across targets of all levels.
        """
        raise NotImplementedError

    def get_samples(self) -> list['SampleRecord']:
        """
        Get flat list of all samples corresponding to this target.
        """
        raise NotImplementedError

    def get_job_attrs(self) -> dict[str, str]:
        """
        Attributes for task descriptors.
        """
        raise NotImplementedError


@dataclass(frozen=True)
class SampleRecord(Target):
    """
    One validated row of the sample manifest.
    """

    sample_id: str
    read_files: tuple[Path, ...]
    single_end: bool
    long_reads: bool

    def __post_init__(self):
        expected = 1 if (self.single_end or self.long_reads) else 2
        if len(self.read_files) != expected:
            raise ValueError(
                f'{self.sample_id}: expected {expected} read file(s) for '
                f'single_end={self.single_end}, long_reads={self.long_reads}, '
                f'got {len(self.read_files)}'
            )

    def __str__(self) -> str:
        return self.sample_id

    @property
    def target_id(self) -> str:
        return self.sample_id

    @property
    def is_paired(self) -> bool:
        return len(self.read_files) == 2

    def read_artifacts(self) -> dict[str, Path]:
        """
        Logical artifact names of the read files, e.g. "reads/S1/1".
        """
        return {f'reads/{self.sample_id}/{i}': path for i, path in enumerate(self.read_files, 1)}

    def get_samples(self) -> list['SampleRecord']:
        return [self]

    def get_job_attrs(self) -> dict[str, str]:
        return {'sample': self.sample_id}


class Cohort(Target):
    """
    All samples of the run together.
    """

    def __init__(self, name: str, samples: list[SampleRecord] | None = None):
        self.name = name
        self._samples: list[SampleRecord] = list(samples or [])

    def __repr__(self):
        return f'Cohort("{self.name}", {len(self._samples)} samples)'

    def __str__(self):
        return self.name

    @property
    def target_id(self) -> str:
        return self.name

    def get_samples(self) -> list[SampleRecord]:
        return list(self._samples)

    def get_sample_ids(self) -> list[str]:
        return [s.sample_id for s in self._samples]

    def get_job_attrs(self) -> dict[str, str]:
        return {'cohort': self.name}


@dataclass
class ReferenceBundle:
    """
    Reference genome and its derived indexes. `index_paths` maps an index kind
    (e.g. "bwa") to a directory; a missing kind has to be built.
    """

    fasta_path: Path
    index_paths: dict[str, Path] = field(default_factory=dict)
    persist_generated_index: bool = False
