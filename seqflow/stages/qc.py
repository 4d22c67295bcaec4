"""
Per-sample read QC: FastQC for short reads, NanoPlot for long reads.
"""

from pathlib import Path

from seqflow.routing import LONG_READ_QC, SHORT_READ_QC
from seqflow.targets import SampleRecord
from seqflow.utils import shell_quote
from seqflow.workflow import SampleStage, StageInput, StageOutput, stage


def _fastq_ext(path: Path) -> str:
    return '.fastq.gz' if path.name.endswith('.gz') else '.fastq'


def read_inputs(sample: SampleRecord) -> dict[str, str]:
    """
    Aliases of the sample's read artifacts: reads_1 and, for paired-end, reads_2.
    """
    return {f'reads_{i}': name for i, name in enumerate(sample.read_artifacts(), 1)}


@stage(routing=SHORT_READ_QC)
class FastQC(SampleStage):
    """
    Run FastQC on each read file of a short-read sample.
    """

    versions = {'fastqc': 'fastqc --version | sed -e "s/FastQC v//g"'}

    def expected_outputs(self, sample: SampleRecord) -> dict[str, Path]:
        """
        One HTML report and one zip archive per read file.
        """
        outs: dict[str, Path] = {}
        for i in range(1, len(sample.read_files) + 1):
            outs |= {
                f'html_{i}': self.prefix / f'{sample.sample_id}_{i}_fastqc.html',
                f'zip_{i}': self.prefix / f'{sample.sample_id}_{i}_fastqc.zip',
            }
        return outs

    def queue_tasks(self, sample: SampleRecord, inputs: StageInput) -> StageOutput | None:
        outs = self.expected_outputs(sample)
        sid = sample.sample_id

        # FastQC names reports after the input file, so reads are linked
        # under the sample ID first.
        links = [shell_quote(f'{sid}_{i}{_fastq_ext(p)}') for i, p in enumerate(sample.read_files, 1)]
        cmd = [f'ln -sf {{reads_{i}}} {link}' for i, link in enumerate(links, 1)]
        cmd.append(f'fastqc --quiet --threads {{ncpu}} {" ".join(links)}')
        for i in range(1, len(sample.read_files) + 1):
            cmd.append(f'mv {shell_quote(f"{sid}_{i}_fastqc.html")} {{html_{i}}}')
            cmd.append(f'mv {shell_quote(f"{sid}_{i}_fastqc.zip")} {{zip_{i}}}')

        task = self.make_task(
            sample,
            command='\n'.join(cmd),
            inputs=read_inputs(sample),
            outputs=outs,
            ncpu=2,
            mem_gb=4,
        )
        return self.make_outputs(sample, data=outs, tasks=task)


@stage(routing=LONG_READ_QC)
class NanoPlot(SampleStage):
    """
    Run NanoPlot on the read file of a long-read sample.
    """

    versions = {'nanoplot': 'NanoPlot --version | sed -e "s/NanoPlot //g"'}

    def expected_outputs(self, sample: SampleRecord) -> dict[str, Path]:
        return {
            'html': self.prefix / f'{sample.sample_id}_NanoPlot-report.html',
            'stats': self.prefix / f'{sample.sample_id}_NanoStats.txt',
        }

    def queue_tasks(self, sample: SampleRecord, inputs: StageInput) -> StageOutput | None:
        outs = self.expected_outputs(sample)
        cmd = """
        NanoPlot --threads {ncpu} --fastq {reads_1} --outdir nanoplot
        cp nanoplot/NanoPlot-report.html {html}
        cp nanoplot/NanoStats.txt {stats}
        """
        task = self.make_task(
            sample,
            command=cmd,
            inputs=read_inputs(sample),
            outputs=outs,
            ncpu=2,
            mem_gb=8,
        )
        return self.make_outputs(sample, data=outs, tasks=task)
