"""
Run summary: ordered key/value description of the run configuration, with
the completion status appended when the run ends. Rendered into text and
HTML reports, and sent as the completion notification.
"""

from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .exceptions import WorkflowError

PLACEHOLDER = 'N/A'

_env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / 'templates'),
    autoescape=select_autoescape(enabled_extensions=('html.j2',)),
    keep_trailing_newline=True,
)


def display_value(value: Any) -> str:
    """
    >>> display_value(None)
    'N/A'
    >>> display_value(['FastQC', 'MultiQC'])
    'FastQC, MultiQC'
    >>> display_value(False)
    'false'
    """
    if value is None or value == '' or (isinstance(value, (list, tuple, set, dict)) and not value):
        return PLACEHOLDER
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (list, tuple, set)):
        return ', '.join(str(v) for v in value)
    return str(value)


class RunSummary:
    """
    Append-only summary. Keys can't be overwritten; `complete()` appends the
    terminal fields once and closes the summary.
    """

    def __init__(self, title: str = 'seqflow'):
        self.title = title
        self.started = datetime.now()
        self.completed: datetime | None = None
        self.success: bool | None = None
        self._items: dict[str, Any] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __getitem__(self, key: str) -> Any:
        return self._items[key]

    @property
    def closed(self) -> bool:
        return self.completed is not None

    def add(self, key: str, value: Any) -> None:
        if self.closed:
            raise WorkflowError(f'Run summary is complete, can\'t add "{key}"')
        if key in self._items:
            raise WorkflowError(f'Run summary already has "{key}"')
        self._items[key] = value

    def update(self, items: dict[str, Any]) -> None:
        for key, value in items.items():
            self.add(key, value)

    def complete(self, success: bool, extra: dict[str, Any] | None = None) -> None:
        """
        Append terminal fields: `extra` (e.g. task counts), start and
        completion times, duration and the success flag.
        """
        if self.closed:
            raise WorkflowError('Run summary is already complete')
        self.update(extra or {})
        completed = datetime.now()
        self.update(
            {
                'Date Started': self.started.isoformat(sep=' ', timespec='seconds'),
                'Date Completed': completed.isoformat(sep=' ', timespec='seconds'),
                'Duration': str(completed - self.started).split('.')[0],
                'Success': success,
            },
        )
        self.completed = completed
        self.success = success

    def render(self) -> list[tuple[str, str]]:
        """
        (key, displayed value) pairs in insertion order. Empty values are
        replaced with a placeholder.
        """
        return [(key, display_value(value)) for key, value in self._items.items()]

    def as_text(self) -> str:
        return _env.get_template('summary.txt.j2').render(title=self.title, success=self.success, items=self.render())

    def as_html(self) -> str:
        return _env.get_template('summary.html.j2').render(title=self.title, success=self.success, items=self.render())

    def write(self, outdir: Path) -> list[Path]:
        """
        Write run_summary.txt and run_summary.html into `outdir`.
        """
        outdir.mkdir(parents=True, exist_ok=True)
        txt_path = outdir / 'run_summary.txt'
        html_path = outdir / 'run_summary.html'
        txt_path.write_text(self.as_text())
        html_path.write_text(self.as_html())
        return [txt_path, html_path]
