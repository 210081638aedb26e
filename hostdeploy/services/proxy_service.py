"""Reverse proxy (nginx) site rendering and paths."""

from jinja2 import Template

from hostdeploy.constants import (
    NGINX_SITE_NAME,
    NGINX_SITES_AVAILABLE,
    NGINX_SITES_ENABLED,
    PROXY_PORT,
)

SITE_TEMPLATE = Template(
    """server {
    listen {{ listen_port }};
    server_name _;

    location / {
        proxy_pass http://localhost:{{ app_port }};
        proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection 'upgrade';
        proxy_set_header Host $host;
        proxy_cache_bypass $http_upgrade;

        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;

        add_header X-Frame-Options "SAMEORIGIN" always;
        add_header X-Content-Type-Options "nosniff" always;
        add_header X-XSS-Protection "1; mode=block" always;
    }
}
""",
    keep_trailing_newline=True,
)


def render_site(app_port: int, listen_port: int = PROXY_PORT) -> str:
    """Render the proxy site forwarding listen_port to localhost:app_port."""
    return SITE_TEMPLATE.render(app_port=int(app_port), listen_port=int(listen_port))


def site_available_path(site_name: str = NGINX_SITE_NAME) -> str:
    return f"{NGINX_SITES_AVAILABLE}/{site_name}"


def site_enabled_path(site_name: str = NGINX_SITE_NAME) -> str:
    return f"{NGINX_SITES_ENABLED}/{site_name}"


def default_site_path() -> str:
    return f"{NGINX_SITES_ENABLED}/default"
