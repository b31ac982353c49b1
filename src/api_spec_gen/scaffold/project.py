"""Project scaffolding: starter configuration, viewer page and its packages."""

import json
import logging
import subprocess
from pathlib import Path

from ..config import CONFIG_FILENAME
from .templates import UI_DEPENDENCIES, render_page

logger = logging.getLogger(__name__)

LOCK_FILES = (("yarn.lock", "yarn"), ("pnpm-lock.yaml", "pnpm"))


def detect_package_manager(start: Path) -> str:
    """yarn or pnpm when a lock file is found in ``start`` or above, else npm."""
    for directory in [Path(start).resolve(), *Path(start).resolve().parents]:
        for lock_file, manager in LOCK_FILES:
            if (directory / lock_file).exists():
                return manager
    return "npm"


def install_command(manager: str, packages: list[str]) -> list[str]:
    verb = "install" if manager == "npm" else "add"
    return [manager, verb, *packages]


def write_config(root: Path, template: dict) -> Path:
    path = Path(root) / CONFIG_FILENAME
    path.write_text(json.dumps(template, indent=2) + "\n", encoding="utf-8")
    return path


def docs_page_path(root: Path, docs_url: str) -> Path:
    """``(src/)app/<docs_url>/page.tsx``; ``src/`` is used when the project has one."""
    root = Path(root)
    app_root = root / "src" / "app" if (root / "src").is_dir() else root / "app"
    return app_root / docs_url.strip("/") / "page.tsx"


def write_docs_page(root: Path, ui: str, docs_url: str, output_file: str) -> Path:
    path = docs_page_path(root, docs_url)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_page(ui, output_file), encoding="utf-8")
    return path


def install_dependencies(root: Path, ui: str) -> list[str]:
    """Install the viewer packages; returns the command that was run."""
    command = install_command(detect_package_manager(root), UI_DEPENDENCIES[ui])
    logger.debug("Running %s", " ".join(command))
    subprocess.run(command, cwd=root, check=True, capture_output=True, text=True)
    return command
