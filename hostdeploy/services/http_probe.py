"""External HTTP probing of the deployed host."""

import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

from hostdeploy.constants import EXTERNAL_PROBE_TIMEOUT, HEALTHY_HTTP_CODES


@dataclass
class ProbeResult:
    """Outcome of one HTTP request against the public address."""

    url: str
    status_code: Optional[int] = None
    latency_ms: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def reachable(self) -> bool:
        return self.status_code is not None

    @property
    def is_healthy(self) -> bool:
        return str(self.status_code) in HEALTHY_HTTP_CODES

    @property
    def status_label(self) -> str:
        return str(self.status_code) if self.reachable else "000"

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return None


class HttpProber:
    """Sends a single GET without following redirects and times it."""

    def __init__(self, timeout: int = EXTERNAL_PROBE_TIMEOUT):
        self.timeout = timeout

    def probe(self, url: str) -> ProbeResult:
        start = time.monotonic()
        try:
            response = requests.get(url, timeout=self.timeout, allow_redirects=False)
        except requests.RequestException as e:
            return ProbeResult(url=url, error=str(e))

        latency_ms = int((time.monotonic() - start) * 1000)
        return ProbeResult(
            url=url,
            status_code=response.status_code,
            latency_ms=latency_ms,
            headers=dict(response.headers),
        )
