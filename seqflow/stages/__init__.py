"""
Stages of the sequencing pipeline.
"""

from .align import BwaMem, Minimap2
from .qc import FastQC, NanoPlot
from .reports import MultiQC, SoftwareVersions

# End stages of the default workflow, the QC stages are pulled in by MultiQC
WORKFLOW = [MultiQC, BwaMem, Minimap2, SoftwareVersions]

# Command line skip flags to the stages they skip
SKIP_FLAGS = {
    'skip_fastqc': [FastQC.__name__],
    'skip_nanoplot': [NanoPlot.__name__],
    'skip_alignment': [BwaMem.__name__, Minimap2.__name__],
    'skip_multiqc': [MultiQC.__name__],
}

__all__ = [
    'BwaMem',
    'FastQC',
    'Minimap2',
    'MultiQC',
    'NanoPlot',
    'SKIP_FLAGS',
    'SoftwareVersions',
    'WORKFLOW',
]
