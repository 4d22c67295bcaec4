"""
Exception classes
"""

from pathlib import Path


class WorkflowError(Exception):
    """
    Error raised by workflow and stage implementation.
    """


class ConfigurationError(WorkflowError):
    """
    Missing or invalid run configuration parameter.
    """

    def __init__(self, param: str, message: str):
        self.param = param
        super().__init__(f'Invalid parameter "{param}": {message}')


class StageInputNotFoundError(WorkflowError):
    """
    Thrown when a stage requests input from another stage
    that doesn't exist.
    """


class GraphError(WorkflowError):
    """
    Task graph can't be constructed from the declared tasks.
    """


class ManifestError(WorkflowError):
    """
    Base class for sample manifest errors.
    """


class ManifestNotFound(ManifestError):
    def __init__(self, path: Path | str):
        self.path = path
        super().__init__(f'Manifest file not found: {path}')


class ManifestMalformed(ManifestError):
    """
    Manifest has no header, or rows don't line up with the header.
    """


class SampleValidationError(ManifestError):
    """
    Row-level manifest problem. Never raised alone: collected into
    a `ManifestValidationError`.
    """

    def __init__(self, sample_id: str | None, line: int | None, message: str):
        self.sample_id = sample_id
        self.line = line
        self.message = message
        where = f'line {line}' if line is not None else 'manifest'
        super().__init__(f'{where} [{sample_id or "?"}]: {message}')


class MissingRequiredField(SampleValidationError):
    def __init__(self, sample_id: str | None, line: int | None, field: str):
        self.field = field
        super().__init__(sample_id, line, f'required field "{field}" is missing or empty')


class InvalidSampleField(SampleValidationError):
    def __init__(self, sample_id: str | None, line: int | None, field: str, message: str):
        self.field = field
        super().__init__(sample_id, line, f'field "{field}": {message}')


class InvalidBooleanField(SampleValidationError):
    def __init__(self, sample_id: str | None, line: int | None, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(
            sample_id,
            line,
            f'field "{field}" must be one of true/false/1/0 (case-insensitive), got "{value}"',
        )


class InputFileNotFound(SampleValidationError):
    def __init__(self, sample_id: str | None, line: int | None, path: Path | str):
        self.path = path
        super().__init__(sample_id, line, f'input file does not exist: {path}')


class DuplicateSampleId(SampleValidationError):
    def __init__(self, sample_id: str, line: int | None, first_line: int | None):
        self.first_line = first_line
        super().__init__(sample_id, line, f'sample_id "{sample_id}" already defined on line {first_line}')


class ManifestValidationError(ManifestError):
    """
    All row-level errors found in a manifest.
    """

    def __init__(self, errors: list[SampleValidationError]):
        self.errors = errors
        lines = '\n'.join(f'  {e}' for e in errors)
        super().__init__(f'Manifest validation failed with {len(errors)} error(s):\n{lines}')


class TaskFailed(WorkflowError):
    """
    External tool exited non-zero, or didn't produce a declared output.
    """

    def __init__(self, task: str, message: str, exit_code: int | None = None):
        self.task = task
        self.exit_code = exit_code
        super().__init__(f'Task {task} failed: {message}')


class IndexBuildFailed(WorkflowError):
    """
    Reference index of a specific kind could not be built.
    """

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(f'Building "{kind}" index failed: {message}')
