"""Static site container: nginx Dockerfile, server config and image build."""

from __future__ import annotations

from pathlib import Path

from .errors import InstallError
from .system import command_exists, run_checked
from .ui import log, success


WEB_ROOT = "/usr/share/nginx/html"
NGINX_IMAGE = "nginx:alpine"
NGINX_CONF_TARGET = "/etc/nginx/conf.d/default.conf"
SITE_PORT = 80
DEFAULT_SITE_TAG = "agentpen-site:latest"

# Copied into the image with the rest of the context, then deleted from the web root.
BUILD_ONLY_FILES = ("Dockerfile", "docker-compose.yml", "nginx.conf")


def render_dockerfile() -> str:
    removed = " ".join(f"{WEB_ROOT}/{name}" for name in BUILD_ONLY_FILES)
    return (
        f"FROM {NGINX_IMAGE}\n"
        f"COPY . {WEB_ROOT}/\n"
        f"COPY nginx.conf {NGINX_CONF_TARGET}\n"
        f"RUN rm -f {removed}\n"
        f"EXPOSE {SITE_PORT}\n"
    )


def render_nginx_conf() -> str:
    return (
        "server {\n"
        f"    listen {SITE_PORT};\n"
        "    server_name _;\n"
        f"    root {WEB_ROOT};\n"
        "    index index.html;\n"
        "\n"
        "    location = /install.sh {\n"
        "        default_type text/x-shellscript;\n"
        "    }\n"
        "\n"
        "    location / {\n"
        "        try_files $uri $uri/ /index.html;\n"
        "    }\n"
        "\n"
        "    location ~ /\\. {\n"
        "        deny all;\n"
        "    }\n"
        "}\n"
    )


SITE_FILES = {
    "Dockerfile": render_dockerfile,
    "nginx.conf": render_nginx_conf,
}


def default_site_dir() -> Path:
    """The repository's site/ directory, falling back to ./site."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        candidate = parent / "site"
        if (candidate / "Dockerfile").exists():
            return candidate
    return Path("site").resolve()


def served_files(context: Path) -> list[str]:
    """Files the built image serves: the whole context minus top-level build-only files."""
    context = Path(context)
    if not context.is_dir():
        raise InstallError(f"Site directory not found: {context}")
    served: list[str] = []
    for path in sorted(context.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(context).as_posix()
        if relative in BUILD_ONLY_FILES:
            continue
        served.append(relative)
    return served


def scaffold_site(site_dir: Path, *, force: bool = False) -> list[Path]:
    """Write Dockerfile and nginx.conf into site_dir; existing files are kept unless force."""
    site_dir = Path(site_dir)
    site_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for filename, render in SITE_FILES.items():
        path = site_dir / filename
        if path.exists() and not force:
            continue
        path.write_text(render(), encoding="utf-8")
        written.append(path)
    return written


def build_site_image(site_dir: Path | None = None, tag: str = DEFAULT_SITE_TAG) -> str:
    context = Path(site_dir) if site_dir else default_site_dir()
    if not (context / "Dockerfile").exists():
        raise InstallError(f"No Dockerfile in {context}; run `agentpen site scaffold {context}` first")
    if not command_exists("docker"):
        raise InstallError("docker not found on PATH")

    log(f"Building site image {tag} from {context}...")
    run_checked(["docker", "build", "-t", tag, str(context)])
    success(f"Site image built: {tag}")
    return tag
