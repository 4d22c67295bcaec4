import logging
from pathlib import Path
from typing import Any

import toml

from seqflow.config import RunConfig, load_config

logging.basicConfig()
logging.getLogger().setLevel(logging.WARN)

MANIFEST_HEADER = 'sample_id,fastq_1,fastq_2,single_end,long_reads'


def set_config(
    config: str | dict[str, Any],
    path: Path,
    merge_with: list[Path] | None = None,
    overrides: dict[str, Any] | None = None,
) -> RunConfig:
    """
    Writes your config to `path` and loads it on top of the packaged defaults.
    If `merge_with` is provided, the config will be merged with the configs at
    the given paths. Merging happens left to right, so that values in the right
    config will override values in the left config.

    Args:
        config (str | dict[str, Any]):
            A valid TOML string, or a dictionary to be converted to TOML.

        path (Path):
            Path to write the config to.

        merge_with (list[Path] | None, optional):
            A list of paths to merge with the config.

        overrides (dict[str, Any] | None, optional):
            Values taking priority over all files, like command line options.
    """
    with path.open('w') as f:
        if isinstance(config, dict):
            toml.dump(config, f)
        elif isinstance(config, str):
            f.write(config)
        else:
            raise TypeError(f'Expected config to be a string or dict, but got {type(config)}')

    return load_config([*(merge_with or []), path], overrides=overrides)


def touch_fastq(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('@r1\nACGT\n+\nIIII\n')
    return path


def write_manifest_file(path: Path, rows: list[str], header: str = MANIFEST_HEADER) -> Path:
    """
    Writes a CSV manifest from raw row strings, e.g. 'S1,a.fq,,true,false'.
    """
    path.write_text('\n'.join([header, *rows]) + '\n')
    return path
