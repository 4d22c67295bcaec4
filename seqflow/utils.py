"""
Utility functions and constants.
"""

import logging
import re
import shlex
import string
import subprocess
import time
import unicodedata
from pathlib import Path
from random import choices
from textwrap import dedent


def exists(path: Path | str) -> bool:
    """
    Check if the object by path exists, where the object can be a local file
    or a local directory.

    Not cached: tasks create files while the workflow is running.
    """
    path = Path(path)
    res = path.exists()
    logging.debug(f'Checked {path} [' + ('exists' if res else 'missing') + ']')
    return res


def update_dict(d1: dict, d2: dict) -> None:
    """
    Merge one dict into another, recursing into nested dicts.
    """
    for k, v2 in d2.items():
        v1 = d1.get(k)
        if isinstance(v1, dict) and isinstance(v2, dict):
            update_dict(v1, v2)
        else:
            d1[k] = v2


def timestamp(rand_suffix_len: int = 5) -> str:
    """
    Generate a timestamp string. If `rand_suffix_len` is set, adds a short random
    string of this length for uniqueness.
    """
    result = time.strftime('%Y_%m%d_%H%M')
    if rand_suffix_len:
        rand_bit = ''.join(choices(string.ascii_uppercase + string.digits, k=rand_suffix_len))
        result += f'_{rand_bit}'
    return result


def slugify(line: str):
    """
    Slugify a string.

    Example:
    >>> slugify(u'Héllø W.1')
    'hello-w-1'
    """

    line = unicodedata.normalize('NFKD', line).encode('ascii', 'ignore').decode()
    line = line.strip().lower()
    line = re.sub(
        r'[\s./]+',
        '-',
        line,
    )
    return line


def command(cmd: str | list[str]) -> str:
    """
    Wraps a bash command: fails on the first error, including inside pipes.
    Leading indentation is removed, so commands can be written as indented
    multiline strings.
    """
    if isinstance(cmd, list):
        cmd = '\n'.join(cmd)
    return 'set -euo pipefail\n\n' + dedent(cmd).strip() + '\n'


def run_command(cmd: str, cwd: Path, log_path: Path) -> int:
    """
    Runs a wrapped bash command in `cwd`, saving the script next to the
    log as `.command.sh`. Stdout and stderr both go to `log_path`.
    Returns the exit code.
    """
    cwd.mkdir(parents=True, exist_ok=True)
    script_path = log_path.parent / '.command.sh'
    script_path.write_text(cmd)
    with log_path.open('w') as log:
        proc = subprocess.run(
            ['bash', str(script_path)],
            cwd=cwd,
            stdout=log,
            stderr=subprocess.STDOUT,
            check=False,
        )
    return proc.returncode


def escape_braces(value: object) -> str:
    """
    Makes a literal value safe to embed into a task command template.

    >>> escape_braces('awk "{print $1}"')
    'awk "{{print $1}}"'
    """
    return str(value).replace('{', '{{').replace('}', '}}')


def shell_quote(value: object) -> str:
    """
    Quotes a literal value as one bash word, then escapes it for a task
    command template.

    >>> shell_quote('my sample')
    "'my sample'"
    """
    return escape_braces(shlex.quote(str(value)))
