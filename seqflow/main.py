#!/usr/bin/env python3

"""
Entry point to run the workflow.
"""

import logging
import sys

import click
import coloredlogs

from seqflow.config import load_config
from seqflow.exceptions import WorkflowError
from seqflow.stages import SKIP_FLAGS, WORKFLOW
from seqflow.status import RunOutcome
from seqflow.workflow import Workflow


def build_overrides(**params) -> dict:
    """
    Config overrides from command line values. Unset options and flags don't
    override values from config files.
    """
    sections = {
        'input': 'workflow',
        'outdir': 'workflow',
        'workdir': 'workflow',
        'name': 'workflow',
        'max_workers': 'workflow',
        'dry_run': 'workflow',
        'fasta': 'reference',
        'genome': 'reference',
        'save_reference': 'reference',
    }
    overrides: dict = {}
    for key, section in sections.items():
        value = params.get(key)
        if value is None or value is False:
            continue
        overrides.setdefault(section, {})[key] = value
    for kind in ['bwa', 'minimap2']:
        if path := params.get(f'{kind}_index'):
            overrides.setdefault('reference', {}).setdefault('index', {})[kind] = path
    return overrides


@click.command(no_args_is_help=True)
@click.option('--input', 'input_path', help='Sample manifest, CSV or TSV')
@click.option('--fasta', help='Reference genome FASTA')
@click.option('--genome', help='Reference genome key from the [genomes] config table')
@click.option('--bwa_index', help='Directory with a prebuilt BWA index')
@click.option('--minimap2_index', help='Directory with a prebuilt minimap2 index')
@click.option('--outdir', help='Directory for stage outputs and pipeline_info')
@click.option('--workdir', help='Directory for task scripts, logs and intermediate files')
@click.option('--save_reference', is_flag=True, help='Keep built indexes in OUTDIR/genome')
@click.option('--skip_fastqc', is_flag=True)
@click.option('--skip_nanoplot', is_flag=True)
@click.option('--skip_alignment', is_flag=True)
@click.option('--skip_multiqc', is_flag=True)
@click.option('--max_workers', type=int, help='Maximum number of tasks running at the same time')
@click.option('--name', help='Run name, used in reports and the completion message')
@click.option(
    '--config',
    'config_paths',
    multiple=True,
    help='Add configuration files on top of the packaged defaults. '
    'Configs are merged left to right, meaning the rightmost file has the '
    'highest priority. Command line options override all files.',
)
@click.option(
    '--dry-run',
    'dry_run',
    is_flag=True,
    help='Dry run: validate inputs and print the tasks to be run, without running them',
)
@click.option(
    '--list-stages',
    'list_stages',
    is_flag=True,
    help='Only list the stages of the workflow',
)
@click.option(
    '--verbose',
    'verbose',
    is_flag=True,
)
def main(
    input_path: str | None,
    fasta: str | None,
    genome: str | None,
    bwa_index: str | None,
    minimap2_index: str | None,
    outdir: str | None,
    workdir: str | None,
    save_reference: bool,
    skip_fastqc: bool,
    skip_nanoplot: bool,
    skip_alignment: bool,
    skip_multiqc: bool,
    max_workers: int | None,
    name: str | None,
    config_paths: list[str],
    dry_run: bool,
    list_stages: bool,
    verbose: bool,
):
    """
    Run read QC and alignment for the samples in a manifest.
    """
    fmt = '%(asctime)s %(levelname)s (%(name)s %(lineno)s): %(message)s'
    coloredlogs.install(level='DEBUG' if verbose else 'INFO', fmt=fmt)

    if list_stages:
        click.echo('End stages of the workflow (required stages are added implicitly):')
        for stg in WORKFLOW:
            click.echo(f'\t{stg.__name__}')
        return

    overrides = build_overrides(
        input=input_path,
        fasta=fasta,
        genome=genome,
        bwa_index=bwa_index,
        minimap2_index=minimap2_index,
        outdir=outdir,
        workdir=workdir,
        save_reference=save_reference,
        max_workers=max_workers,
        name=name,
        dry_run=dry_run,
    )
    skip_flags = {
        'skip_fastqc': skip_fastqc,
        'skip_nanoplot': skip_nanoplot,
        'skip_alignment': skip_alignment,
        'skip_multiqc': skip_multiqc,
    }

    try:
        config = load_config(list(config_paths), overrides)
        for flag, enabled in skip_flags.items():
            if enabled:
                config.skip_stages.extend(s for s in SKIP_FLAGS[flag] if s not in config.skip_stages)
        outcome = Workflow(config, stages=WORKFLOW).run()
    except WorkflowError as e:
        logging.error(str(e))
        sys.exit(1)

    if outcome != RunOutcome.SUCCESS:
        sys.exit(1)


if __name__ == '__main__':
    main()
