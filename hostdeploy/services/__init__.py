"""
hostdeploy Services Layer

Remote execution, source resolution, HTTP probing and proxy rendering.
"""

from .ssh_service import SSHService, RemoteOptions
from .source_service import SourceService
from .http_probe import HttpProber, ProbeResult

__all__ = [
    "SSHService",
    "RemoteOptions",
    "SourceService",
    "HttpProber",
    "ProbeResult",
]
