"""
Read alignment: BWA-MEM for short reads, minimap2 for long reads. Both sort
and index the alignments with samtools. Reference indexes are requested from
the reference preparation gate, so they are built once if not supplied.
"""

from pathlib import Path

from seqflow.routing import LONG_READ_ALIGNMENT, SHORT_READ_ALIGNMENT
from seqflow.stages.qc import read_inputs
from seqflow.targets import SampleRecord
from seqflow.utils import shell_quote
from seqflow.workflow import SampleStage, StageInput, StageOutput, stage

SAMTOOLS_VERSION = 'samtools --version | head -1 | sed -e "s/samtools //g"'


def read_group(sample: SampleRecord) -> str:
    """
    Read group header line, with tabs escaped for the aligner.
    """
    return f'@RG\\tID:{sample.sample_id}\\tSM:{sample.sample_id}'


class AlignmentStage(SampleStage):
    def expected_outputs(self, sample: SampleRecord) -> dict[str, Path]:
        return {
            'bam': self.prefix / f'{sample.sample_id}.sorted.bam',
            'bai': self.prefix / f'{sample.sample_id}.sorted.bam.bai',
        }


@stage(routing=SHORT_READ_ALIGNMENT)
class BwaMem(AlignmentStage):
    """
    Align short reads with BWA-MEM against the "bwa" index.
    """

    versions = {
        'bwa': 'bwa 2>&1 | grep -e "^Version" | sed -e "s/Version: //g"',
        'samtools': SAMTOOLS_VERSION,
    }

    def queue_tasks(self, sample: SampleRecord, inputs: StageInput) -> StageOutput | None:
        outs = self.expected_outputs(sample)
        reads = ' '.join(f'{{{alias}}}' for alias in read_inputs(sample))
        cmd = f"""
        INDEX=$(find -L {{index}} -name "*.amb" | sed -e 's/\\.amb$//')
        bwa mem -t {{ncpu}} -R {shell_quote(read_group(sample))} "$INDEX" {reads} \\
        | samtools sort -@ {{ncpu}} -o {{bam}} -
        samtools index {{bam}}
        """
        task = self.make_task(
            sample,
            command=cmd,
            inputs=read_inputs(sample),
            outputs=outs,
            indexes={'index': 'bwa'},
            ncpu=8,
            mem_gb=16,
        )
        return self.make_outputs(sample, data=outs, tasks=task)


@stage(routing=LONG_READ_ALIGNMENT)
class Minimap2(AlignmentStage):
    """
    Align long reads with minimap2 against the "minimap2" index.
    """

    versions = {
        'minimap2': 'minimap2 --version',
        'samtools': SAMTOOLS_VERSION,
    }

    def queue_tasks(self, sample: SampleRecord, inputs: StageInput) -> StageOutput | None:
        outs = self.expected_outputs(sample)
        preset = self.config.raw.get('minimap2', {}).get('preset', 'map-ont')
        cmd = f"""
        INDEX=$(ls {{index}}/*.mmi | head -1)
        minimap2 -t {{ncpu}} -ax {shell_quote(preset)} -R {shell_quote(read_group(sample))} "$INDEX" {{reads_1}} \\
        | samtools sort -@ {{ncpu}} -o {{bam}} -
        samtools index {{bam}}
        """
        task = self.make_task(
            sample,
            command=cmd,
            inputs=read_inputs(sample),
            outputs=outs,
            indexes={'index': 'minimap2'},
            ncpu=8,
            mem_gb=16,
        )
        return self.make_outputs(sample, data=outs, tasks=task)
