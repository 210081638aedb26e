"""Source resolution: clone or update the repository and detect how to deploy it."""

import re
import subprocess
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit, quote

from hostdeploy.constants import (
    COMPOSE_FILE_NAMES,
    DOCKERFILE_NAME,
    REMOTE_DEPLOY_ROOT,
)
from hostdeploy.exceptions import SourceError
from hostdeploy.logger import DeployLogger
from hostdeploy.models.deployment import (
    DeployStrategy,
    DeploymentFacts,
    sanitize_container_name,
)
from hostdeploy.models.parameters import ParameterSet

REPO_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


def repo_name_from_url(repo_url: str) -> str:
    """Last path segment of the URL without a trailing .git."""
    path = urlsplit(repo_url).path.rstrip("/")
    name = path.rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


def authenticated_url(repo_url: str, token: str) -> str:
    """Embed the access token in an https URL that carries no credentials yet."""
    parts = urlsplit(repo_url)
    if parts.scheme != "https" or "@" in parts.netloc:
        return repo_url
    netloc = f"{quote(token, safe='')}@{parts.netloc}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def mask_token(text: str, token: str) -> str:
    """Replace the token, raw or URL-quoted, with ****."""
    for secret in {token, quote(token, safe="")}:
        text = text.replace(secret, "****")
    return text


def detect_strategy(source_dir: Path) -> Optional[DeployStrategy]:
    """Compose wins when both manifests exist; None when neither does."""
    if any((source_dir / name).is_file() for name in COMPOSE_FILE_NAMES):
        return DeployStrategy.COMPOSE
    if (source_dir / DOCKERFILE_NAME).is_file():
        return DeployStrategy.DOCKERFILE
    return None


class SourceService:
    """Fetches the application source into a local working copy."""

    def __init__(self, work_dir: Path, logger: DeployLogger):
        self.work_dir = Path(work_dir)
        self.logger = logger

    def resolve(self, params: ParameterSet) -> DeploymentFacts:
        """
        Clone or pull the repository, check out the branch and derive facts.

        Raises:
            SourceError: On git failure, an unusable repository name or
                missing container manifests
        """
        repo_name = repo_name_from_url(params.repo_url)
        if not repo_name or not REPO_NAME_PATTERN.match(repo_name) or repo_name in (".", ".."):
            raise SourceError(
                f"Cannot derive a repository name from {params.repo_url}"
            )

        container_name = sanitize_container_name(repo_name)
        if not container_name or container_name.startswith("-"):
            raise SourceError(
                f"Repository name '{repo_name}' does not yield a valid container name"
            )

        local_path = self.work_dir / repo_name
        if local_path.is_dir():
            self.logger.warning("Repository directory exists. Pulling latest changes...")
            self._git(["fetch", "origin", params.branch], local_path, params)
            self._git(["checkout", params.branch], local_path, params)
            self._git(["pull", "origin", params.branch], local_path, params)
        else:
            self.logger.log("Cloning repository...")
            self.work_dir.mkdir(parents=True, exist_ok=True)
            clone_url = authenticated_url(params.repo_url, params.token)
            self._git(["clone", clone_url, str(local_path)], self.work_dir, params)
            self._git(["checkout", params.branch], local_path, params)

        strategy = detect_strategy(local_path)
        if strategy is None:
            raise SourceError(
                "Neither Dockerfile nor docker-compose.yml found in repository",
                f"Path: {local_path}",
            )
        self.logger.success(f"Deploy strategy: {strategy.value}")

        return DeploymentFacts(
            repo_name=repo_name,
            local_path=local_path,
            strategy=strategy,
            remote_path=f"{REMOTE_DEPLOY_ROOT}/{repo_name}",
            container_name=container_name,
        )

    def _git(self, args: list[str], cwd: Path, params: ParameterSet) -> None:
        display = mask_token(" ".join(["git"] + args), params.token)
        self.logger.log_command(display)

        try:
            result = subprocess.run(
                ["git"] + args, cwd=cwd, capture_output=True, text=True
            )
        except OSError as e:
            raise SourceError(f"Could not run git: {e}")

        self.logger.log_output(mask_token(result.stdout, params.token), "stdout")
        self.logger.log_output(mask_token(result.stderr, params.token), "stderr")

        if result.returncode != 0:
            raise SourceError(f"{display} failed", f"Exit code: {result.returncode}")
