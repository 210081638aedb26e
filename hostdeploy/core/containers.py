"""Helpers for reading the host's running-container list."""

from typing import Optional

RUNNING_NAMES_COMMAND = "docker ps --format '{{.Names}}'"


def match_running_container(
    ps_output: str, container_name: str, compose: bool = False
) -> Optional[str]:
    """
    Find the container in `docker ps` name output.

    Dockerfile deployments must match exactly. Compose names its containers
    <project>-<service>-<n>, so there the first name containing the
    container name is accepted.
    """
    names = [line.strip() for line in ps_output.splitlines() if line.strip()]
    if container_name in names:
        return container_name
    if compose:
        for name in names:
            if container_name in name:
                return name
    return None
