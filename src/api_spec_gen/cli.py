"""CLI entry point for api-spec-gen."""

import logging
import subprocess
from pathlib import Path

import click

from api_spec_gen.config import CONFIG_FILENAME, ConfigError, build_template, load_config
from api_spec_gen.generator.document import OpenApiGenerator, render_document
from api_spec_gen.generator.validator import validate_document
from api_spec_gen.scaffold.project import install_dependencies, write_config, write_docs_page
from api_spec_gen.scaffold.templates import SUPPORTED_UIS, UI_DEPENDENCIES


class _EchoHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        click.echo(self.format(record), err=True)


def _configure_logging(debug: bool) -> None:
    """Send the package's log records to stderr; DEBUG when requested."""
    logger = logging.getLogger("api_spec_gen")
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if not any(isinstance(handler, _EchoHandler) for handler in logger.handlers):
        handler = _EchoHandler()
        handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
        logger.addHandler(handler)


@click.group()
def main():
    """API Spec Gen: generate OpenAPI documents from Next.js route handlers."""
    pass


@main.command()
@click.option("--ui", default="scalar", type=click.Choice(SUPPORTED_UIS), help="Documentation viewer.")
@click.option("--docs-url", default="api-docs", help="Route of the documentation page.")
@click.option("--schema", "schema_type", default="typescript", type=click.Choice(["typescript", "zod"]), help="Schema source.")
@click.option("--no-install", is_flag=True, help="Skip installing the viewer packages.")
def init(ui: str, docs_url: str, schema_type: str, no_install: bool):
    """Create next.openapi.json and a documentation page."""
    root = Path.cwd()
    template = build_template(ui=ui, docs_url=docs_url, schema_type=schema_type)

    config_path = write_config(root, template)
    click.echo(f"Created {config_path.name}")

    page_path = write_docs_page(root, ui, docs_url, template["outputFile"])
    click.echo(f"Created {page_path.relative_to(root).as_posix()} for {ui}")

    if no_install:
        return
    packages = " ".join(UI_DEPENDENCIES[ui])
    click.echo(f"Installing {packages}...")
    try:
        install_dependencies(root, ui)
    except (OSError, subprocess.CalledProcessError) as e:
        raise click.ClickException(f"Failed to install {packages}: {e}") from e
    click.echo(f"Installed {packages}")


@main.command()
@click.option("-c", "--config", "config_path", default=CONFIG_FILENAME, type=click.Path(path_type=Path), help="Configuration file.")
@click.option("--debug", is_flag=True, help="Log resolution details.")
def generate(config_path: Path, debug: bool):
    """Scan the API routes and write the OpenAPI document."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    _configure_logging(debug or config.debug)

    click.echo(f"Scanning {config.api_dir}...")
    spec = OpenApiGenerator(config).generate()
    operations = sum(len(methods) for methods in spec["paths"].values())
    click.echo(f"Found {operations} operations in {len(spec['paths'])} paths.")

    for location, error in validate_document(spec).items():
        click.echo(f"  Warning: {location}: {error}", err=True)

    output = config.output_path
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(render_document(spec, output), encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Cannot write {output}: {e}") from e
    click.echo(f"OpenAPI specification saved to {output}")
