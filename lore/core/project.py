"""
Project resolution for retrieval scoping.

Resolution order:
1. explicit project name
2. project descriptor file in the working directory or an ancestor
3. repository name of the git `origin` remote
4. first path component of the working directory under the workspace root
5. configured fallback name
"""

import configparser
import logging
from pathlib import Path

from .config import LoreConfig

logger = logging.getLogger(__name__)


def repo_name_from_url(url: str) -> str | None:
    """
    Repository name from a remote URL.

    Examples:
        "git@github.com:acme/widgets.git" -> "widgets"
        "https://example.com/acme/widgets" -> "widgets"
    """
    tail = url.strip().rstrip("/").replace(":", "/").split("/")[-1]
    if tail.endswith(".git"):
        tail = tail[:-4]
    return tail or None


class ProjectResolver:
    """Resolves the project a retrieval call is scoped to."""

    def __init__(self, config: LoreConfig):
        self.config = config

    def resolve(self, cwd: Path | str | None = None, explicit: str | None = None) -> str | None:
        if explicit:
            return explicit

        if cwd:
            cwd = Path(cwd)
            for resolver in (self._from_descriptor, self._from_git_remote, self._from_workspace):
                try:
                    name = resolver(cwd)
                except (OSError, configparser.Error) as e:
                    logger.debug(f"{resolver.__name__} failed for {cwd}: {e}")
                    continue
                if name:
                    logger.debug(f"Resolved project '{name}' via {resolver.__name__}")
                    return name

        return self.config.fallback_project

    def _ancestors(self, cwd: Path) -> list[Path]:
        return [cwd, *cwd.parents]

    def _from_descriptor(self, cwd: Path) -> str | None:
        for directory in self._ancestors(cwd):
            descriptor = directory / self.config.project_descriptor
            if descriptor.is_file():
                lines = descriptor.read_text().strip().splitlines()
                return lines[0].strip() if lines else None
        return None

    def _from_git_remote(self, cwd: Path) -> str | None:
        for directory in self._ancestors(cwd):
            git_config = directory / ".git" / "config"
            if git_config.is_file():
                parser = configparser.ConfigParser(strict=False, interpolation=None)
                parser.read(git_config)
                section = 'remote "origin"'
                if parser.has_option(section, "url"):
                    return repo_name_from_url(parser.get(section, "url"))
                return None
        return None

    def _from_workspace(self, cwd: Path) -> str | None:
        root = self.config.workspace_root
        if root is None:
            return None
        try:
            relative = cwd.resolve().relative_to(Path(root).resolve())
        except ValueError:
            return None
        return relative.parts[0] if relative.parts else None
