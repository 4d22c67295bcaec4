from pathlib import Path

import pytest

from seqflow.config import RunConfig

from . import set_config, touch_fastq, write_manifest_file


@pytest.fixture(autouse=True)
def no_slack_token(monkeypatch):
    # Never post to a real Slack workspace from tests
    monkeypatch.delenv('SLACK_TOKEN', raising=False)


@pytest.fixture
def fasta(tmp_path: Path) -> Path:
    path = tmp_path / 'ref' / 'genome.fa'
    path.parent.mkdir(parents=True)
    path.write_text('>chr1\nACGTACGTACGT\n')
    return path


@pytest.fixture
def reads(tmp_path: Path) -> dict[str, Path]:
    """
    Read files for a paired-end (S1), a single-end (S2) and a long-read (S3) sample.
    """
    reads_dir = tmp_path / 'reads'
    return {
        name: touch_fastq(reads_dir / name)
        for name in ['S1_R1.fastq.gz', 'S1_R2.fastq.gz', 'S2.fastq.gz', 'S3.fastq.gz']
    }


@pytest.fixture
def manifest(tmp_path: Path, reads) -> Path:
    return write_manifest_file(
        tmp_path / 'samples.csv',
        [
            'S1,reads/S1_R1.fastq.gz,reads/S1_R2.fastq.gz,false,false',
            'S2,reads/S2.fastq.gz,,true,false',
            'S3,reads/S3.fastq.gz,,false,true',
        ],
    )


@pytest.fixture
def run_config(tmp_path: Path, manifest: Path, fasta: Path) -> RunConfig:
    return set_config(
        {
            'workflow': {
                'input': str(manifest),
                'outdir': str(tmp_path / 'results'),
                'workdir': str(tmp_path / 'work'),
                'max_workers': 2,
            },
            'reference': {'fasta': str(fasta)},
        },
        tmp_path / 'config.toml',
    )
