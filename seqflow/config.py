"""
Run configuration. Constructed once at startup from TOML files and command line
overrides, then passed explicitly to every component that needs it.

Files are merged left to right on top of the packaged `defaults.toml`,
meaning the rightmost file has the highest priority. Nested tables are merged,
not replaced.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import toml

from .exceptions import ConfigurationError
from .resources import ResourceLimits
from .targets import ReferenceBundle
from .utils import exists, update_dict

defaults_config_path = Path(__file__).parent / 'defaults.toml'

DUPLICATE_SAMPLE_POLICIES = ('error', 'warn')


@dataclass
class RunConfig:
    """
    Validated configuration of one workflow run.
    """

    input: Path
    fasta: Path
    outdir: Path
    workdir: Path
    name: str = 'seqflow'
    genome: str | None = None
    index_paths: dict[str, Path] = field(default_factory=dict)
    save_reference: bool = False
    max_workers: int = 4
    dry_run: bool = False
    check_expected_outputs: bool = True
    skip_stages: list[str] = field(default_factory=list)
    duplicate_samples: str = 'error'
    limits: ResourceLimits = field(default_factory=lambda: ResourceLimits(16))
    slack_channel: str | None = None
    config_paths: list[Path] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def pipeline_info_dir(self) -> Path:
        return self.outdir / 'pipeline_info'

    def reference_bundle(self) -> ReferenceBundle:
        """
        Fresh reference bundle for the run. Copies the index mapping, so the
        index gate can record built indexes without touching the config.
        """
        return ReferenceBundle(
            fasta_path=self.fasta,
            index_paths=dict(self.index_paths),
            persist_generated_index=self.save_reference,
        )

    @classmethod
    def from_dict(cls, d: dict[str, Any], config_paths: list[Path] | None = None) -> 'RunConfig':
        """
        Validate a merged config dictionary.
        """
        wfl = d.get('workflow', {})
        ref = d.get('reference', {})

        if not (input_path := wfl.get('input')):
            raise ConfigurationError('input', 'path to the sample manifest must be provided (--input)')

        genome = ref.get('genome') or None
        fasta = ref.get('fasta') or None
        index_paths = {kind: path for kind, path in ref.get('index', {}).items() if path}
        if genome:
            genomes = d.get('genomes', {})
            if genome not in genomes:
                raise ConfigurationError(
                    'genome',
                    f'"{genome}" is not defined in the [genomes] table. '
                    f'Available: {", ".join(sorted(genomes)) or "none"}',
                )
            fasta = fasta or genomes[genome].get('fasta')
            for kind, path in genomes[genome].items():
                if kind != 'fasta' and path:
                    # Explicitly provided indexes take priority over the genome ones
                    index_paths.setdefault(kind, path)

        if not fasta:
            raise ConfigurationError('fasta', 'reference FASTA must be provided (--fasta or --genome)')
        if not exists(fasta):
            raise ConfigurationError('fasta', f'file does not exist: {fasta}')
        for kind, path in index_paths.items():
            if not exists(path):
                raise ConfigurationError(f'{kind}_index', f'prebuilt index does not exist: {path}')

        duplicate_samples = wfl.get('duplicate_samples', 'error')
        if duplicate_samples not in DUPLICATE_SAMPLE_POLICIES:
            raise ConfigurationError(
                'duplicate_samples',
                f'expected one of {DUPLICATE_SAMPLE_POLICIES}, got "{duplicate_samples}"',
            )

        max_workers = int(wfl.get('max_workers', 4))
        if max_workers < 1:
            raise ConfigurationError('max_workers', f'must be at least 1, got {max_workers}')

        res = d.get('resources', {})
        max_cpus = int(res.get('max_cpus', 16))
        if max_cpus < 1:
            raise ConfigurationError('max_cpus', f'must be at least 1, got {max_cpus}')

        return cls(
            input=Path(input_path),
            fasta=Path(fasta),
            outdir=Path(wfl.get('outdir', './results')).absolute(),
            workdir=Path(wfl.get('workdir', './work')).absolute(),
            name=wfl.get('name') or 'seqflow',
            genome=genome,
            index_paths={kind: Path(path) for kind, path in index_paths.items()},
            save_reference=bool(ref.get('save_reference', False)),
            max_workers=max_workers,
            dry_run=bool(wfl.get('dry_run', False)),
            check_expected_outputs=bool(wfl.get('check_expected_outputs', True)),
            skip_stages=list(wfl.get('skip_stages', [])),
            duplicate_samples=duplicate_samples,
            limits=ResourceLimits(max_cpus, res.get('max_memory_gb') or None),
            slack_channel=d.get('slack', {}).get('channel') or None,
            config_paths=list(config_paths or []),
            raw=d,
        )


def load_config(
    config_paths: list[str | Path] | None = None,
    overrides: dict[str, Any] | None = None,
) -> RunConfig:
    """
    Merge the defaults, user config files and command line overrides, and
    validate the result.
    """
    d = toml.load(defaults_config_path)
    paths: list[Path] = []
    for path in config_paths or []:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError('config', f'config file does not exist: {path}')
        logging.info(f'Reading config {path}')
        update_dict(d, toml.load(path))
        paths.append(path)
    if overrides:
        update_dict(d, overrides)
    return RunConfig.from_dict(d, config_paths=paths)
