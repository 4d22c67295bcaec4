"""
Test parsing and validating sample manifests.
"""

from pathlib import Path

import pandas as pd
import pytest

from seqflow.exceptions import (
    DuplicateSampleId,
    InputFileNotFound,
    InvalidBooleanField,
    InvalidSampleField,
    ManifestMalformed,
    ManifestNotFound,
    ManifestValidationError,
    MissingRequiredField,
)
from seqflow.manifest import parse_bool, read_manifest, validate_manifest, validate_row, write_manifest

from . import touch_fastq, write_manifest_file


def test_read_manifest_keeps_order_and_line_numbers(tmp_path):
    path = write_manifest_file(
        tmp_path / 'samples.csv',
        ['S1,a.fq,b.fq,false,false', '', 'S2,c.fq,,true,false'],
    )
    rows = list(read_manifest(path))
    assert [r.fields['sample_id'] for r in rows] == ['S1', 'S2']
    assert [r.line for r in rows] == [2, 4]
    assert rows[1].fields['fastq_2'] == ''


def test_read_manifest_tsv(tmp_path):
    path = tmp_path / 'samples.tsv'
    path.write_text('sample_id\tfastq_1\tfastq_2\tsingle_end\tlong_reads\nS1\ta.fq\t\ttrue\tfalse\n')
    (row,) = read_manifest(path)
    assert row.fields['fastq_1'] == 'a.fq'
    assert row.fields['single_end'] == 'true'


def test_read_manifest_errors(tmp_path):
    with pytest.raises(ManifestNotFound):
        list(read_manifest(tmp_path / 'missing.csv'))

    empty = tmp_path / 'empty.csv'
    empty.write_text('\n\n')
    with pytest.raises(ManifestMalformed, match='header row is missing'):
        list(read_manifest(empty))

    ragged = write_manifest_file(tmp_path / 'ragged.csv', ['S1,a.fq,,true'])
    with pytest.raises(ManifestMalformed, match='line 2'):
        list(read_manifest(ragged))

    dup = write_manifest_file(tmp_path / 'dup.csv', [], header='sample_id,sample_id')
    with pytest.raises(ManifestMalformed, match='duplicate column'):
        list(read_manifest(dup))


@pytest.mark.parametrize(
    'value,expected',
    [('true', True), ('TRUE', True), ('1', True), ('False', False), ('0', False), (' false ', False)],
)
def test_parse_bool(value, expected):
    parsed = parse_bool(value, 'single_end')
    assert parsed.ok
    assert parsed.value is expected


def test_parse_bool_invalid():
    parsed = parse_bool('yes', 'long_reads', sample_id='S1', line=3)
    assert not parsed.ok
    assert isinstance(parsed.error, InvalidBooleanField)
    assert parsed.error.field == 'long_reads'
    assert parsed.error.sample_id == 'S1'
    assert parsed.error.line == 3


@pytest.mark.parametrize(
    'single_end,long_reads,n_reads',
    [('false', 'false', 2), ('true', 'false', 1), ('false', 'true', 1), ('true', 'true', 1)],
)
def test_read_count_follows_flags(tmp_path, single_end, long_reads, n_reads):
    r1 = touch_fastq(tmp_path / 'r1.fq')
    r2 = touch_fastq(tmp_path / 'r2.fq')
    fields = {
        'sample_id': 'S1',
        'fastq_1': str(r1),
        'fastq_2': str(r2) if n_reads == 2 else '',
        'single_end': single_end,
        'long_reads': long_reads,
    }
    record = validate_row(fields)
    assert len(record.read_files) == n_reads
    assert record.read_files[0] == r1


def test_validate_row_relative_paths(tmp_path):
    touch_fastq(tmp_path / 'reads' / 'r1.fq')
    fields = {'sample_id': 'S1', 'fastq_1': 'reads/r1.fq', 'single_end': '1', 'long_reads': '0'}
    record = validate_row(fields, base_dir=tmp_path)
    assert record.read_files == (tmp_path / 'reads' / 'r1.fq',)
    assert record.single_end and not record.long_reads


def test_validate_row_collects_all_errors(tmp_path):
    fields = {'sample_id': 'S1', 'fastq_1': '', 'single_end': 'maybe', 'long_reads': 'false'}
    with pytest.raises(ManifestValidationError) as exc:
        validate_row(fields, line=5)
    errors = exc.value.errors
    assert {type(e) for e in errors} == {MissingRequiredField, InvalidBooleanField}
    assert all(e.sample_id == 'S1' and e.line == 5 for e in errors)


def test_validate_row_missing_file(tmp_path):
    fields = {
        'sample_id': 'S2',
        'fastq_1': str(tmp_path / 'missing.fq'),
        'fastq_2': '',
        'single_end': 'true',
        'long_reads': 'false',
    }
    with pytest.raises(ManifestValidationError) as exc:
        validate_row(fields, line=3)
    (error,) = exc.value.errors
    assert isinstance(error, InputFileNotFound)
    assert error.path == tmp_path / 'missing.fq'
    assert 'S2' in str(error)
    assert 'missing.fq' in str(error)


def test_validate_row_paired_needs_second_file(tmp_path):
    r1 = touch_fastq(tmp_path / 'r1.fq')
    fields = {'sample_id': 'S1', 'fastq_1': str(r1), 'fastq_2': '', 'single_end': 'false', 'long_reads': 'false'}
    with pytest.raises(ManifestValidationError) as exc:
        validate_row(fields)
    (error,) = exc.value.errors
    assert isinstance(error, MissingRequiredField)
    assert error.field == 'fastq_2'


def test_validate_row_single_end_with_second_file(tmp_path):
    r1 = touch_fastq(tmp_path / 'r1.fq')
    r2 = touch_fastq(tmp_path / 'r2.fq')
    fields = {'sample_id': 'S1', 'fastq_1': str(r1), 'fastq_2': str(r2), 'single_end': 'true', 'long_reads': 'false'}
    with pytest.raises(ManifestValidationError) as exc:
        validate_row(fields)
    (error,) = exc.value.errors
    assert isinstance(error, InvalidSampleField)
    assert error.field == 'fastq_2'


def test_validate_manifest(manifest, reads):
    records = validate_manifest(manifest)
    assert [r.sample_id for r in records] == ['S1', 'S2', 'S3']
    assert records[0].read_files == (reads['S1_R1.fastq.gz'], reads['S1_R2.fastq.gz'])
    assert records[1].single_end
    assert records[2].long_reads


def test_validate_manifest_ignores_unknown_columns(tmp_path, reads):
    path = write_manifest_file(
        tmp_path / 'samples.csv',
        ['S2,reads/S2.fastq.gz,,true,false,tumour'],
        header='sample_id,fastq_1,fastq_2,single_end,long_reads,condition',
    )
    (record,) = validate_manifest(path)
    assert record.sample_id == 'S2'


def test_validate_manifest_reports_every_row(tmp_path, reads):
    """
    S1 references a missing file, S2 has a bad flag, S3 is fine:
    both errors are reported together, with their lines.
    """
    path = write_manifest_file(
        tmp_path / 'samples.csv',
        [
            'S1,reads/nope.fastq.gz,reads/S1_R2.fastq.gz,false,false',
            'S2,reads/S2.fastq.gz,,yes,false',
            'S3,reads/S3.fastq.gz,,false,true',
        ],
    )
    with pytest.raises(ManifestValidationError) as exc:
        validate_manifest(path)
    errors = exc.value.errors
    assert [(type(e), e.sample_id, e.line) for e in errors] == [
        (InputFileNotFound, 'S1', 2),
        (InvalidBooleanField, 'S2', 3),
    ]


def test_validate_manifest_duplicates(tmp_path, reads):
    path = write_manifest_file(
        tmp_path / 'samples.csv',
        ['S2,reads/S2.fastq.gz,,true,false', 'S2,reads/S3.fastq.gz,,false,true'],
    )
    with pytest.raises(ManifestValidationError) as exc:
        validate_manifest(path)
    (error,) = exc.value.errors
    assert isinstance(error, DuplicateSampleId)
    assert error.line == 3
    assert error.first_line == 2

    records = validate_manifest(path, duplicate_samples='warn')
    assert [r.sample_id for r in records] == ['S2']
    assert records[0].read_files == (reads['S2.fastq.gz'],)
    assert records[0].single_end


def test_validate_manifest_without_samples(tmp_path):
    path = write_manifest_file(tmp_path / 'samples.csv', [])
    with pytest.raises(ManifestMalformed, match='no samples'):
        validate_manifest(path)


def test_write_manifest(tmp_path, manifest):
    records = validate_manifest(manifest)
    out = write_manifest(records, tmp_path / 'out' / 'samplesheet.valid.csv')
    df = pd.read_csv(out, dtype=str, keep_default_na=False)
    assert list(df.columns) == ['sample_id', 'fastq_1', 'fastq_2', 'single_end', 'long_reads']
    assert list(df.sample_id) == ['S1', 'S2', 'S3']
    assert df.fastq_2[1] == ''
    assert list(df.long_reads) == ['false', 'false', 'true']
    assert Path(df.fastq_1[0]).is_absolute()

    # The written manifest is itself valid
    assert validate_manifest(out) == records
