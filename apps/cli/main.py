"""Command line interface for the feature catalog."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import click

from pazuzu.catalog.service import FeatureService
from pazuzu.common.config import DEFAULT_CONFIG_PATH, load_config
from pazuzu.common.errors import FeatureValidationError
from pazuzu.common.logging import get_logger, setup_logging
from pazuzu.store.sql_store import SqlCatalog

if TYPE_CHECKING:
    from collections.abc import Callable

    from pazuzu.common.types import Feature

logger = get_logger(__name__)


def _feature_json(feature: Feature) -> dict[str, Any]:
    return feature.model_dump(mode="json", exclude={"id"})


def _run(operation: Callable[[], Any]) -> Any:
    """Turn validation failures into a clean CLI error (exit code 1)."""
    try:
        return operation()
    except FeatureValidationError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option(
    "--config", "config_path", default=str(DEFAULT_CONFIG_PATH), help="Config file path"
)
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """Manage the feature catalog and compose Dockerfiles."""
    cfg = load_config(config_path)
    setup_logging(cfg.logging.level, cfg.logging.json_format)
    catalog = SqlCatalog.from_config(cfg.database)
    ctx.obj = {
        "catalog": catalog,
        "service": FeatureService(catalog, default_base_image=cfg.compose.base_image),
    }


@cli.command("init-db")
@click.pass_obj
def init_db(obj: dict[str, Any]) -> None:
    """Create the catalog tables if they don't exist."""
    obj["catalog"].create_schema()
    click.echo("Database schema initialized")


@cli.command()
@click.argument("name")
@click.option("--docker-data", default=None, help="Dockerfile fragment")
@click.option("--dependency", "dependencies", multiple=True, help="Dependency feature name")
@click.option("--test-snippet", default=None)
@click.option("--description", default=None)
@click.option("--author", default=None)
@click.pass_obj
def create(
    obj: dict[str, Any],
    name: str,
    docker_data: str | None,
    dependencies: tuple[str, ...],
    test_snippet: str | None,
    description: str | None,
    author: str | None,
) -> None:
    """Create a feature."""
    service: FeatureService = obj["service"]
    feature = _run(
        lambda: service.create(
            name,
            docker_data,
            dependencies,
            test_snippet=test_snippet,
            description=description,
            author=author,
        )
    )
    click.echo(json.dumps(_feature_json(feature), indent=2))


@cli.command()
@click.argument("name")
@click.option("--new-name", default=None)
@click.option("--docker-data", default=None)
@click.option("--dependency", "dependencies", multiple=True, help="Replaces the dependency set")
@click.option("--clear-dependencies", is_flag=True, help="Remove all dependencies")
@click.option("--test-snippet", default=None)
@click.option("--description", default=None)
@click.option("--author", default=None)
@click.pass_obj
def update(
    obj: dict[str, Any],
    name: str,
    new_name: str | None,
    docker_data: str | None,
    dependencies: tuple[str, ...],
    clear_dependencies: bool,
    test_snippet: str | None,
    description: str | None,
    author: str | None,
) -> None:
    """Update a feature. Options that are not given are left unchanged."""
    if clear_dependencies and dependencies:
        raise click.UsageError("--dependency and --clear-dependencies are mutually exclusive")
    dependency_names: list[str] | None = None
    if clear_dependencies:
        dependency_names = []
    elif dependencies:
        dependency_names = list(dependencies)

    service: FeatureService = obj["service"]
    feature = _run(
        lambda: service.update(
            name,
            new_name,
            docker_data,
            dependency_names,
            test_snippet=test_snippet,
            description=description,
            author=author,
        )
    )
    click.echo(json.dumps(_feature_json(feature), indent=2))


@cli.command()
@click.argument("name")
@click.pass_obj
def get(obj: dict[str, Any], name: str) -> None:
    """Show one feature."""
    service: FeatureService = obj["service"]
    feature = _run(lambda: service.get(name))
    click.echo(json.dumps(_feature_json(feature), indent=2))


@cli.command("list")
@click.argument("name_filter", required=False, default="")
@click.pass_obj
def list_features(obj: dict[str, Any], name_filter: str) -> None:
    """List features whose name contains NAME_FILTER (case-insensitive)."""
    service: FeatureService = obj["service"]
    features = service.list_features(name_filter)
    click.echo(json.dumps([_feature_json(f) for f in features], indent=2))


@cli.command()
@click.argument("name")
@click.pass_obj
def delete(obj: dict[str, Any], name: str) -> None:
    """Delete a feature (no-op if it doesn't exist)."""
    service: FeatureService = obj["service"]
    _run(lambda: service.delete(name))
    click.echo(f"Deleted {name}")


@cli.command()
@click.argument("names", nargs=-1)
@click.option("--base-image", default=None, help="FROM image; empty string for none")
@click.option("--output", "output", type=click.Path(dir_okay=False), default=None)
@click.pass_obj
def compose(
    obj: dict[str, Any], names: tuple[str, ...], base_image: str | None, output: str | None
) -> None:
    """Compose a Dockerfile from NAMES and their dependencies."""
    service: FeatureService = obj["service"]
    artifact = _run(lambda: service.compose(names, base_image=base_image))
    if output:
        with open(output, "w") as f:
            f.write(artifact.dockerfile)
        logger.info("dockerfile_written", path=output, features=artifact.features)
    else:
        click.echo(artifact.dockerfile, nl=False)


if __name__ == "__main__":
    cli()
