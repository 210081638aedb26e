"""
hostdeploy Constants

Centralized constants for magic values, defaults, and exit codes.
"""

# Parameter defaults
DEFAULT_BRANCH = "main"
MIN_APP_PORT = 1024
MAX_APP_PORT = 65535
SECURE_KEY_MODES = (0o600, 0o400)
CORRECTED_KEY_MODE = 0o600

# SSH Timeout Configuration
SSH_CONNECTION_TIMEOUT = 5

# Local paths
DEFAULT_WORK_DIR = "."
DEFAULT_LOG_DIR = "logs"
DEPLOYMENT_RECORD_FILE = "deployment.env"
VALIDATION_SUMMARY_FILE = "validation_summary.json"

# Source manifests
DOCKERFILE_NAME = "Dockerfile"
COMPOSE_FILE_NAMES = ("docker-compose.yml", "docker-compose.yaml", "compose.yml")

# Transfer
REMOTE_DEPLOY_ROOT = "deployments"
TRANSFER_EXCLUDES = (".git", "node_modules", "__pycache__")

# Rollout
CONTAINER_SETTLE_DELAY = 5

# Reverse proxy (nginx)
NGINX_SITE_NAME = "app-proxy"
NGINX_SITES_AVAILABLE = "/etc/nginx/sites-available"
NGINX_SITES_ENABLED = "/etc/nginx/sites-enabled"
PROXY_PORT = 80

# Validation thresholds
HEALTHY_HTTP_CODES = ("200", "301", "302")
LOCAL_PROBE_TIMEOUT = 5
VALIDATION_COMMAND_TIMEOUT = 30
EXTERNAL_PROBE_TIMEOUT = 10
LATENCY_WARN_MS = 2000
DISK_WARN_PERCENT = 80
DISK_FAIL_PERCENT = 90
MEMORY_WARN_PERCENT = 90
LOG_SCAN_LINES = 50
LOG_ERROR_PATTERN = "error|exception|fatal|critical"
DOCKER_STORAGE_PATH = "/var/lib/docker"

# Exit codes (stable, consumed by CI)
EXIT_SUCCESS = 0
EXIT_GENERAL_FAILURE = 1
EXIT_CONNECTIVITY_FAILURE = 2
EXIT_TRANSFER_FAILURE = 3
EXIT_PROXY_CONFIG_FAILURE = 4
EXIT_ROLLOUT_FAILURE = 5
EXIT_PROVISION_FAILURE = 6
EXIT_VALIDATION_SERVICE_FAILURE = 10
EXIT_VALIDATION_NETWORK_FAILURE = 11
EXIT_VALIDATION_FAILURE = 13
EXIT_INTERRUPTED = 130

# Log Configuration
LOG_DATE_FORMAT = "%Y-%m-%d"

# Tool Names (for doctor check)
REQUIRED_TOOLS = [
    "git",
    "ssh",
    "rsync",
]
