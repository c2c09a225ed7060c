"""Runtime configuration: defaults, environment overrides and CLI overrides."""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Sequence

from . import __version__
from .models import RemoteRepository

logger = logging.getLogger(__name__)

MAVEN_CENTRAL = "central::default::https://repo.maven.apache.org/maven2"

ENV_LOCAL_REPO = "MVNTOOLBOX_LOCAL_REPO"
ENV_REPOSITORIES = "MVNTOOLBOX_REPOSITORIES"
ENV_TIMEOUT = "MVNTOOLBOX_TIMEOUT"
ENV_OFFLINE = "MVNTOOLBOX_OFFLINE"


def default_local_repository() -> Path:
    return Path.home() / ".m2" / "repository"


@dataclass(frozen=True)
class ToolboxConfig:
    """Settings shared by the engine and the resolver."""

    local_repository: Path = field(default_factory=default_local_repository)
    remote_repositories: List[RemoteRepository] = field(
        default_factory=lambda: [RemoteRepository.parse(MAVEN_CENTRAL)]
    )
    timeout: float = 30.0
    offline: bool = False
    user_agent: str = f"mvntoolbox/{__version__}"

    @classmethod
    def from_env(cls, environ=None) -> 'ToolboxConfig':
        """
        Build a config from defaults overridden by environment variables.

        Raises:
            RepositorySpecFormatError: If a repository spec is malformed
            ValueError: If the timeout is not a number
        """
        environ = os.environ if environ is None else environ
        config = cls()

        local_repo = environ.get(ENV_LOCAL_REPO)
        if local_repo and local_repo.strip():
            config = replace(config, local_repository=Path(local_repo.strip()).expanduser())

        repositories = environ.get(ENV_REPOSITORIES)
        if repositories and repositories.strip():
            specs = [s.strip() for s in repositories.split(",") if s.strip()]
            config = replace(config, remote_repositories=[RemoteRepository.parse(s) for s in specs])

        timeout = environ.get(ENV_TIMEOUT)
        if timeout and timeout.strip():
            config = replace(config, timeout=float(timeout))

        if environ.get(ENV_OFFLINE, "").strip().lower() in ("1", "true", "yes"):
            config = replace(config, offline=True)

        return config

    def with_overrides(
        self,
        local_repository: Optional[str] = None,
        repositories: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
        offline: Optional[bool] = None,
    ) -> 'ToolboxConfig':
        """Apply CLI overrides, which take precedence over the environment."""
        config = self
        if local_repository:
            config = replace(config, local_repository=Path(local_repository).expanduser())
        if repositories:
            config = replace(config, remote_repositories=[RemoteRepository.parse(s) for s in repositories])
        if timeout is not None:
            config = replace(config, timeout=timeout)
        if offline:
            config = replace(config, offline=True)
        logger.debug(
            f"Configuration: local repository {config.local_repository}, "
            f"remote repositories {[str(r) for r in config.remote_repositories]}"
        )
        return config
