"""
Run-level reports: MultiQC over all QC outputs, and the table of tool versions.
"""

from pathlib import Path

from seqflow import __version__
from seqflow.stages.qc import FastQC, NanoPlot
from seqflow.targets import Cohort
from seqflow.utils import escape_braces, shell_quote
from seqflow.workflow import CohortStage, StageInput, StageOutput, stage

MULTIQC_VERSION = 'multiqc --version | sed -e "s/multiqc, version //g"'


@stage(required_stages=[FastQC, NanoPlot], forced=True)
class MultiQC(CohortStage):
    """
    Aggregate FastQC and NanoPlot outputs into one report. Either QC stage can
    be skipped or have no samples routed to it, the report covers what exists.
    """

    versions = {'multiqc': MULTIQC_VERSION}

    def expected_outputs(self, cohort: Cohort) -> dict[str, Path]:
        return {
            'html': self.prefix / 'multiqc_report.html',
            'data': self.prefix / 'multiqc_report_data',
        }

    def queue_tasks(self, cohort: Cohort, inputs: StageInput) -> StageOutput | None:
        qc_inputs: list[str] = []
        for outs in inputs.as_artifacts_by_target(FastQC, optional=True).values():
            qc_inputs.extend(a.name for key, a in sorted(outs.items()) if key.startswith('zip_'))
        for outs in inputs.as_artifacts_by_target(NanoPlot, optional=True).values():
            qc_inputs.append(outs['stats'].name)

        if not qc_inputs:
            return self.make_outputs(cohort, skipped=True)

        aliases = {f'qc_{i}': name for i, name in enumerate(qc_inputs, 1)}
        cmd = ['mkdir -p inputs']
        cmd.extend(f'ln -sf {{{alias}}} inputs/' for alias in aliases)
        cmd.extend(
            [
                f'multiqc -f inputs -o output --title {shell_quote(self.workflow.name)} '
                '--filename multiqc_report.html',
                'rm -rf {data}',
                'cp output/multiqc_report.html {html}',
                'cp -r output/multiqc_report_data {data}',
            ],
        )
        outs = self.expected_outputs(cohort)
        task = self.make_task(cohort, command='\n'.join(cmd), inputs=aliases, outputs=outs, ncpu=1, mem_gb=4)
        return self.make_outputs(cohort, data=outs, tasks=task)


@stage(forced=True)
class SoftwareVersions(CohortStage):
    """
    Collect versions of the tools used by all stages of the workflow into
    pipeline_info/software_versions.tsv. A tool that can't report its
    version is listed as N/A.
    """

    def expected_outputs(self, cohort: Cohort) -> dict[str, Path]:
        return {'tsv': self.config.pipeline_info_dir / 'software_versions.tsv'}

    def tool_versions(self) -> list[tuple[str, str, str]]:
        """
        (stage, tool, version command) for each stage of the workflow, sorted.
        """
        rows = []
        for stg in self.workflow.queued_stages:
            for tool, version_cmd in sorted(stg.versions.items()):
                rows.append((stg.name, tool, version_cmd))
        return sorted(rows)

    def queue_tasks(self, cohort: Cohort, inputs: StageInput) -> StageOutput | None:
        cmd = [
            'printf "stage\\ttool\\tversion\\n" > {tsv}',
            f'printf "Workflow\\tseqflow\\t{__version__}\\n" >> {{tsv}}',
        ]
        for stage_name, tool, version_cmd in self.tool_versions():
            # Only the first line of the output, the exit status is ignored
            cmd.append(f'v=$( ({escape_braces(version_cmd)}) 2>/dev/null | head -1 || true)')
            cmd.append(f'printf "{stage_name}\\t{tool}\\t%s\\n" "${{{{v:-N/A}}}}" >> {{tsv}}')

        outs = self.expected_outputs(cohort)
        task = self.make_task(cohort, command='\n'.join(cmd), outputs=outs)
        return self.make_outputs(cohort, data=outs, tasks=task)
