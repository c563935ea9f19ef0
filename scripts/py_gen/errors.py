"""
Exceptions raised while collecting declarations and emitting artifacts.

Every fatal condition of the pipeline is a PyGenError subclass. Components
raise; only the command-line driver catches them and turns them into a
non-zero exit status.
"""

from typing import Optional


class PyGenError(Exception):
    """Base class for fatal py-gen errors.

    Examples:
        >>> raise PyGenError("output directory is not writable")
        PyGenError: output directory is not writable
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class TemplateError(PyGenError):
    """A build template is missing, unreadable, or left a placeholder unresolved."""

    def __init__(self, message: str, template: Optional[str] = None):
        if template:
            message = f'{template}: {message}'
        super().__init__(message)
        self.template = template


class MaterializeError(PyGenError):
    """An artifact could not be written to disk."""

    def __init__(self, message: str, path: Optional[str] = None):
        if path:
            message = f'{path}: {message}'
        super().__init__(message)
        self.path = path


class AstProviderError(PyGenError):
    """The compiler frontend failed to analyze a translation unit."""

    def __init__(self, message: str, source: Optional[str] = None, stderr: str = ''):
        if source:
            message = f'{source}: {message}'
        if stderr.strip():
            message = f'{message}\n{stderr.rstrip()}'
        super().__init__(message)
        self.source = source
        self.stderr = stderr


class ConfigError(PyGenError):
    """The configuration file or command line is invalid."""
