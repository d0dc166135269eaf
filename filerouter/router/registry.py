"""Project registry contract: which template a project is filed under."""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from filerouter.errors import UnknownProjectError


class ProjectRegistry(ABC):
    """Read-only view of the project/client registry."""

    @abstractmethod
    def get_template_id(self, project_id: str) -> str:
        """
        Return the template id of a project.

        Raises:
            UnknownProjectError: the project is not registered
        """
        pass


class StaticProjectRegistry(ProjectRegistry):
    """Registry backed by a plain mapping, e.g. loaded from configuration."""

    def __init__(self, projects: Optional[Mapping[str, str]] = None):
        self._projects = dict(projects or {})

    def get_template_id(self, project_id: str) -> str:
        try:
            return self._projects[project_id]
        except KeyError:
            raise UnknownProjectError(project_id) from None

    def register(self, project_id: str, template_id: str) -> None:
        self._projects[project_id] = template_id
