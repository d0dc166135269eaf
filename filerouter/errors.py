"""Exceptions raised by the routing pipeline.

Only configuration and storage failures reach the caller of ``route``;
per-signal failures are absorbed by the arbiter.
"""

from typing import Optional, Sequence


class FileRoutingError(Exception):
    """Base class for all routing errors."""


class UnknownTemplateError(FileRoutingError, KeyError):
    """The template id is not one of the configured templates."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Unknown folder template: {template_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class UnknownProjectError(FileRoutingError, KeyError):
    """The project registry has no template for this project."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"No folder template registered for project: {project_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class RecordNotFoundError(FileRoutingError, KeyError):
    """No routing record exists with the given id."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Routing record not found: {record_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class ClassifierUnavailableError(FileRoutingError):
    """The content classifier timed out, failed, or answered garbage."""


class InvalidCandidatePathError(FileRoutingError):
    """A signal proposed a folder that does not exist in the template."""

    def __init__(self, path: Sequence[str], template_id: str, source: Optional[str] = None):
        self.path = tuple(path)
        self.template_id = template_id
        self.source = source
        where = f" (from {source})" if source else ""
        super().__init__(
            f"Folder {'/'.join(self.path) or '<empty>'} is not part of template {template_id}{where}"
        )


class StoreUnavailableError(FileRoutingError):
    """The persistent key-value substrate could not be read or written."""
