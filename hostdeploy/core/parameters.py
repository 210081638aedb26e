"""
Parameter validation

Turns raw values (CLI options, config file, prompts) into a ParameterSet.
Each field validator returns an error string or None so prompts can re-ask.
"""

import ipaddress
import os
import socket
import stat
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlsplit

from hostdeploy.constants import (
    CORRECTED_KEY_MODE,
    DEFAULT_BRANCH,
    MAX_APP_PORT,
    MIN_APP_PORT,
    SECURE_KEY_MODES,
)
from hostdeploy.exceptions import ParameterError
from hostdeploy.logger import DeployLogger
from hostdeploy.models.parameters import ParameterSet
from hostdeploy.models.results import ValidationResult


def validate_repo_url(value: Any) -> Optional[str]:
    parts = urlsplit(str(value or ""))
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return "Invalid URL format. Please enter a valid HTTP/HTTPS URL."
    return None


def validate_token(value: Any) -> Optional[str]:
    if not str(value or "").strip():
        return "PAT cannot be empty."
    return None


def validate_ssh_user(value: Any) -> Optional[str]:
    user = str(value or "").strip()
    if not user:
        return "Username cannot be empty."
    if user.startswith("-") or any(c.isspace() for c in user) or "@" in user:
        return f"Invalid SSH username: {user}"
    return None


def validate_host(value: Any) -> Optional[str]:
    host = str(value or "").strip()
    if not host:
        return "Server address cannot be empty."
    try:
        ipaddress.IPv4Address(host)
        return None
    except ValueError:
        pass
    if host.startswith("-") or any(c.isspace() for c in host):
        return f"Invalid server address: {host}"
    try:
        socket.gethostbyname(host)
    except (socket.gaierror, UnicodeError):
        return f"Server address does not resolve: {host}"
    return None


def validate_branch(value: Any) -> Optional[str]:
    branch = str(value or "").strip()
    if branch.startswith("-") or any(c.isspace() for c in branch):
        return f"Invalid branch name: {branch}"
    return None


def validate_key_path(value: Any) -> Optional[str]:
    if not value or not Path(str(value)).expanduser().is_file():
        return f"SSH key file not found at: {value}"
    return None


def validate_port(value: Any) -> Optional[str]:
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        return f"Invalid port. Must be between {MIN_APP_PORT} and {MAX_APP_PORT}."
    if not MIN_APP_PORT <= port <= MAX_APP_PORT:
        return f"Invalid port. Must be between {MIN_APP_PORT} and {MAX_APP_PORT}."
    return None


FIELD_VALIDATORS: Dict[str, Callable[[Any], Optional[str]]] = {
    "repo_url": validate_repo_url,
    "token": validate_token,
    "branch": validate_branch,
    "ssh_user": validate_ssh_user,
    "host": validate_host,
    "ssh_key_path": validate_key_path,
    "app_port": validate_port,
}


def key_file_mode(key_path: str) -> int:
    """Permission bits of the key file, e.g. 0o600."""
    return stat.S_IMODE(os.stat(Path(key_path).expanduser()).st_mode)


def is_secure_key_mode(mode: int) -> bool:
    return mode in SECURE_KEY_MODES


def secure_key_file(key_path: str, logger: Optional[DeployLogger] = None) -> int:
    """
    Tighten the key file to 600 unless it is already 600 or 400.

    Returns:
        The mode the file ends up with
    """
    mode = key_file_mode(key_path)
    if is_secure_key_mode(mode):
        return mode

    if logger:
        logger.warning(f"SSH key permissions are {mode:o}. Setting to {CORRECTED_KEY_MODE:o}...")
    os.chmod(Path(key_path).expanduser(), CORRECTED_KEY_MODE)
    return key_file_mode(key_path)


def collect_parameters(
    raw: Dict[str, Any], logger: Optional[DeployLogger] = None
) -> ParameterSet:
    """
    Validate raw values and build the immutable ParameterSet.

    Args:
        raw: Field name to value; branch may be missing or empty
        logger: Receives the key permission correction warning

    Raises:
        ParameterError: Listing every invalid field
    """
    validation = ValidationResult()
    for field_name, validator in FIELD_VALIDATORS.items():
        error = validator(raw.get(field_name))
        if error:
            validation.add_error(f"{field_name}: {error}")

    if validation.has_errors:
        raise ParameterError(validation.errors)

    key_path = str(raw["ssh_key_path"])
    secure_key_file(key_path, logger)

    params = ParameterSet(
        repo_url=str(raw["repo_url"]).strip(),
        token=str(raw["token"]).strip(),
        ssh_user=str(raw["ssh_user"]).strip(),
        host=str(raw["host"]).strip(),
        ssh_key_path=key_path,
        app_port=int(str(raw["app_port"]).strip()),
        branch=str(raw.get("branch") or DEFAULT_BRANCH).strip(),
    )

    if logger:
        logger.success("All parameters collected successfully.")
    return params
