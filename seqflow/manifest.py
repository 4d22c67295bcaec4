"""
Sample manifest parsing and validation.

Parsing only splits the file into raw string fields by column name. Validation
turns each raw row into a typed `SampleRecord`, and collects every problem in the
manifest before failing, so a run with many samples reports all broken rows
at once.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, Iterator, Mapping, TypeVar

import pandas as pd

from .exceptions import (
    DuplicateSampleId,
    InputFileNotFound,
    InvalidBooleanField,
    InvalidSampleField,
    ManifestMalformed,
    ManifestNotFound,
    ManifestValidationError,
    MissingRequiredField,
    SampleValidationError,
)
from .targets import SampleRecord

logger = logging.getLogger(__file__)

REQUIRED_COLUMNS = ('sample_id', 'fastq_1', 'single_end', 'long_reads')
KNOWN_COLUMNS = REQUIRED_COLUMNS + ('fastq_2',)

_TRUE_TOKENS = {'true', '1'}
_FALSE_TOKENS = {'false', '0'}

T = TypeVar('T')


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """
    Result of parsing one field: either a value, or an error.
    """

    value: T | None = None
    error: SampleValidationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ManifestRow:
    """
    Raw manifest row with its line number in the file.
    """

    line: int
    fields: dict[str, str]


def _delimiter(path: Path) -> str:
    return '\t' if path.suffix.lower() in ('.tsv', '.txt') else ','


def read_manifest(path: Path | str) -> Iterator[ManifestRow]:
    """
    Lazily read a delimited manifest with a header row. Yields one row per
    non-blank data line, in file order, with all values kept as stripped strings.
    Tab-delimited for .tsv/.txt files, comma-delimited otherwise.
    """
    path = Path(path)
    if not path.is_file():
        raise ManifestNotFound(path)

    with path.open(newline='') as fh:
        reader = csv.reader(fh, delimiter=_delimiter(path))
        header: list[str] | None = None
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            if header is None:
                header = [cell.strip() for cell in row]
                if '' in header:
                    raise ManifestMalformed(f'{path}: header line {reader.line_num} has empty column names')
                if len(set(header)) != len(header):
                    raise ManifestMalformed(f'{path}: header has duplicate column names: {header}')
                continue
            if len(row) != len(header):
                raise ManifestMalformed(
                    f'{path}: line {reader.line_num} has {len(row)} columns, '
                    f'but the header has {len(header)}'
                )
            yield ManifestRow(line=reader.line_num, fields={k: v.strip() for k, v in zip(header, row)})

        if header is None:
            raise ManifestMalformed(f'{path}: header row is missing')


def parse_bool(value: str, field: str, sample_id: str | None = None, line: int | None = None) -> Parsed[bool]:
    """
    Parse a boolean manifest field: "true"/"false" (any case), or "1"/"0".

    >>> parse_bool('TRUE', 'single_end').value
    True
    >>> parse_bool('yes', 'single_end').ok
    False
    """
    token = value.strip().lower()
    if token in _TRUE_TOKENS:
        return Parsed(value=True)
    if token in _FALSE_TOKENS:
        return Parsed(value=False)
    return Parsed(error=InvalidBooleanField(sample_id, line, field, value))


def _resolve(path_str: str, base_dir: Path | None) -> Path:
    path = Path(path_str).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def validate_row(
    fields: Mapping[str, str],
    line: int | None = None,
    base_dir: Path | None = None,
) -> SampleRecord:
    """
    Turn one raw manifest row into a `SampleRecord`. All problems found in
    the row are raised together as a `ManifestValidationError`. Relative
    file paths are resolved against `base_dir`.
    """
    errors: list[SampleValidationError] = []
    sample_id = fields.get('sample_id', '').strip() or None

    for col in REQUIRED_COLUMNS:
        if not fields.get(col, '').strip():
            errors.append(MissingRequiredField(sample_id, line, col))

    flags: dict[str, bool] = {}
    for col in ('single_end', 'long_reads'):
        if raw := fields.get(col, '').strip():
            parsed = parse_bool(raw, col, sample_id, line)
            if parsed.ok:
                assert parsed.value is not None
                flags[col] = parsed.value
            else:
                assert parsed.error is not None
                errors.append(parsed.error)

    read_strs = [fields['fastq_1'].strip()] if fields.get('fastq_1', '').strip() else []
    fastq_2 = fields.get('fastq_2', '').strip()
    if len(flags) == 2:
        # Number of read files is only known when both flags parsed
        one_file = flags['single_end'] or flags['long_reads']
        if one_file and fastq_2:
            errors.append(
                InvalidSampleField(
                    sample_id,
                    line,
                    'fastq_2',
                    'must be empty when single_end or long_reads is true',
                ),
            )
        elif not one_file:
            if fastq_2:
                read_strs.append(fastq_2)
            else:
                errors.append(MissingRequiredField(sample_id, line, 'fastq_2'))

    read_files = [_resolve(p, base_dir) for p in read_strs]
    for path in read_files:
        if not path.exists():
            errors.append(InputFileNotFound(sample_id, line, path))

    if errors:
        raise ManifestValidationError(errors)

    assert sample_id is not None
    return SampleRecord(
        sample_id=sample_id,
        read_files=tuple(read_files),
        single_end=flags['single_end'],
        long_reads=flags['long_reads'],
    )


def validate_manifest(path: Path | str, duplicate_samples: str = 'error') -> list[SampleRecord]:
    """
    Read and validate the whole manifest. Either every row is valid and all
    records are returned, or a single `ManifestValidationError` lists every
    error of every row.

    @param duplicate_samples: 'error' to reject repeated sample_id values,
        'warn' to log them and keep only the first row of each sample.
    """
    path = Path(path)
    base_dir = path.absolute().parent
    records: list[SampleRecord] = []
    errors: list[SampleValidationError] = []
    first_line_by_sid: dict[str, int] = {}

    for row in read_manifest(path):
        if unknown := sorted(set(row.fields) - set(KNOWN_COLUMNS)):
            logger.debug(f'Line {row.line}: ignoring unknown columns {unknown}')

        sid = row.fields.get('sample_id', '').strip()
        if sid and sid in first_line_by_sid:
            if duplicate_samples == 'error':
                errors.append(DuplicateSampleId(sid, row.line, first_line_by_sid[sid]))
            else:
                logger.warning(
                    f'Line {row.line}: sample_id "{sid}" already used on line '
                    f'{first_line_by_sid[sid]}, ignoring this row',
                )
                continue
        elif sid:
            first_line_by_sid[sid] = row.line

        try:
            records.append(validate_row(row.fields, line=row.line, base_dir=base_dir))
        except ManifestValidationError as e:
            errors.extend(e.errors)

    if errors:
        raise ManifestValidationError(errors)
    if not records:
        raise ManifestMalformed(f'{path}: no samples found')

    logger.info(f'Validated {len(records)} samples from {path}')
    return records


def write_manifest(records: list[SampleRecord], path: Path) -> Path:
    """
    Write validated records back as a manifest with absolute paths and
    canonical booleans.
    """
    df = pd.DataFrame(
        [
            {
                'sample_id': r.sample_id,
                'fastq_1': str(r.read_files[0].absolute()),
                'fastq_2': str(r.read_files[1].absolute()) if r.is_paired else '',
                'single_end': str(r.single_end).lower(),
                'long_reads': str(r.long_reads).lower(),
            }
            for r in records
        ],
        columns=['sample_id', 'fastq_1', 'fastq_2', 'single_end', 'long_reads'],
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
