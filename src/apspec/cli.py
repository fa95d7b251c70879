"""CLI entry point for apspec."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from apspec.config import Config
from apspec.document.linter import PolicyLinter
from apspec.document.loader import FileDocumentLoader, parse_fragment
from apspec.document.merger import DocumentMerger
from apspec.document.options import LintOptions
from apspec.document.provider import DocumentProvider
from apspec.errors import ApSpecError, OpenApiValidationError
from apspec.generator import GeneratorOptions, generate_spec, render_module
from apspec.scanner.forest import SourceForest


def _build_forest(sources: tuple[Path, ...]) -> SourceForest:
    """One directory is scanned recursively; otherwise files and directories are expanded."""
    if len(sources) == 1 and sources[0].is_dir():
        return SourceForest.from_directory(sources[0])
    files: list[Path] = []
    for source in sources:
        if source.is_dir():
            files.extend(sorted(p for p in source.rglob("*.py") if "__pycache__" not in p.parts))
        else:
            files.append(source)
    return SourceForest.from_paths(files)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """apspec: generate, lint and compose OpenAPI documents."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument("sources", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Write the YAML fragment here.")
@click.option(
    "--module",
    "module_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Also write a Python module embedding the generated YAML.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Config file with a 'generator' section.",
)
@click.option("--name", default=None, help="Service name.")
@click.option("--title", default=None, help="Document title (defaults to the name).")
@click.option("--version", "api_version", default=None, help="Document version.")
def generate(
    sources: tuple[Path, ...],
    output: Path | None,
    module_path: Path | None,
    config_path: Path | None,
    name: str | None,
    title: str | None,
    api_version: str | None,
) -> None:
    """Scan SOURCES for route registrations and emit an OpenAPI fragment."""
    try:
        options = GeneratorOptions.from_config(Config.load(config_path)) if config_path else GeneratorOptions()
        overrides = {"name": name, "title": title, "version": api_version}
        options = options.model_copy(update={k: v for k, v in overrides.items() if v is not None})
        spec = generate_spec(_build_forest(sources), options)
    except ApSpecError as e:
        raise click.ClickException(str(e)) from e

    if output is None:
        click.echo(spec.yaml, nl=False)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(spec.yaml, encoding="utf-8")
        click.echo(f"Wrote {spec.endpoint_count} endpoint(s) to {output}", err=True)

    if module_path is not None:
        module_path.parent.mkdir(parents=True, exist_ok=True)
        module_path.write_text(render_module(spec, options.effective_title), encoding="utf-8")
        click.echo(f"Wrote module {module_path}", err=True)


@main.command()
@click.argument("fragment_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--options",
    "options_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Lint options (JSON or YAML).",
)
@click.option("--no-require-paths", is_flag=True, help="Allow fragments without paths (shared fragments).")
def lint(fragment_path: Path, options_path: Path | None, no_require_paths: bool) -> None:
    """Lint one OpenAPI fragment."""
    try:
        options = LintOptions.load(options_path) if options_path else LintOptions.empty()
        fragment = parse_fragment(fragment_path.stem, fragment_path.as_posix(), fragment_path.read_text(encoding="utf-8"))
    except ApSpecError as e:
        raise click.ClickException(str(e)) from e

    errors = PolicyLinter(options).lint(fragment.origin, fragment.root, require_paths=not no_require_paths)
    if errors:
        for message in errors:
            click.echo(message, err=True)
        raise SystemExit(1)
    click.echo(f"OK: {fragment_path}")


@main.command()
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Config file with 'document' and 'lint' sections.",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Write the composed document here.")
@click.option("--format", "fmt", default="yaml", type=click.Choice(["json", "yaml"]), help="Output format.")
def compose(config_path: Path, output: Path | None, fmt: str) -> None:
    """Load, merge and lint the configured fragments into one document."""
    try:
        config = Config.load(config_path)
        provider = DocumentProvider(
            loader=FileDocumentLoader.from_config(config, base_dir=config_path.parent),
            merger=DocumentMerger(config),
            linter=PolicyLinter(LintOptions.from_config(config)),
        )
        document = provider.warm_up()
    except OpenApiValidationError as e:
        for message in e.errors:
            click.echo(message, err=True)
        raise SystemExit(1) from e
    except ApSpecError as e:
        raise click.ClickException(str(e)) from e

    text = document.json + "\n" if fmt == "json" else document.yaml
    if output is None:
        click.echo(text, nl=False)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        click.echo(
            f"Composed {document.stats.path_count} path(s) from {document.stats.fragment_count} fragment(s) into {output}",
            err=True,
        )
