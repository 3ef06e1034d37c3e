"""
Click CLI for node-group discovery and scaling.
"""

import dataclasses
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import click

from .config import Settings, load_cluster_config
from .errors import NodeGroupError
from .models import NodeGroupSpec, NodeGroupSummary
from .stacks import CloudFormationProvider, StackManager

logger = logging.getLogger(__name__)

TABLE_COLUMNS = [
    ("CLUSTER", "cluster"),
    ("NODEGROUP", "name"),
    ("STATUS", "status"),
    ("CREATED", "creation_time"),
    ("MIN SIZE", "min_size"),
    ("MAX SIZE", "max_size"),
    ("DESIRED CAPACITY", "desired_capacity"),
    ("INSTANCE TYPE", "instance_type"),
    ("IMAGE ID", "image_id"),
    ("ASG NAME", "auto_scaling_group_name"),
    ("TYPE", "type"),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def _make_manager(settings: Settings, cluster: str, region: Optional[str]) -> StackManager:
    provider = CloudFormationProvider(region=region or settings.region)
    return StackManager(provider, cluster, prefix=settings.stack_prefix)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _format_table(summaries: List[NodeGroupSummary]) -> str:
    """Render summaries as an aligned text table."""
    rows: List[List[str]] = [[header for header, _ in TABLE_COLUMNS]]
    for summary in summaries:
        data = summary.to_dict()
        rows.append(["-" if data[key] is None else str(data[key]) for _, key in TABLE_COLUMNS])

    widths = [max(len(row[i]) for row in rows) for i in range(len(TABLE_COLUMNS))]
    lines = ["  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip() for row in rows]
    return "\n".join(lines)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, verbose):
    """
    ngctl - discover and scale EKS node groups managed through CloudFormation.
    """
    ctx.ensure_object(dict)
    try:
        settings = Settings.from_env()
    except NodeGroupError as e:
        _fail(str(e))
    _configure_logging("DEBUG" if verbose else settings.log_level)
    ctx.obj["settings"] = settings


@main.group()
def get():
    """Show existing resources."""
    pass


@main.group()
def scale():
    """Change the capacity of existing resources."""
    pass


@get.command("nodegroups")
@click.option("--cluster", required=True, help="EKS cluster name")
@click.option("--name", "name_filter", help="Only show this nodegroup")
@click.option("--region", help="AWS region")
@click.option("-o", "--output", type=click.Choice(["table", "json"]), default="table", help="Output format")
@click.option("--timeout", type=float, help="Give up the scan after this many seconds")
@click.pass_context
def get_nodegroups(ctx, cluster: str, name_filter: Optional[str], region: Optional[str], output: str, timeout: Optional[float]):
    """
    List the nodegroups of a cluster.
    """
    settings: Settings = ctx.obj["settings"]
    manager = _make_manager(settings, cluster, region)

    try:
        summaries = manager.get_nodegroup_summaries(
            name_filter=name_filter,
            timeout_s=timeout if timeout is not None else settings.scan_timeout_s,
        )
    except NodeGroupError as e:
        _fail(str(e))

    if output == "json":
        click.echo(json.dumps([s.to_dict() for s in summaries], indent=2))
    elif not summaries:
        click.echo(f"No nodegroups found for cluster {cluster}")
    else:
        click.echo(_format_table(summaries))


@scale.command("nodegroup")
@click.option("--cluster", help="EKS cluster name (defaults to the config file's cluster)")
@click.option("-n", "--name", help="Nodegroup name")
@click.option("-N", "--nodes", type=click.IntRange(min=0), help="Desired number of nodes")
@click.option("-m", "--nodes-min", type=click.IntRange(min=0), help="Minimum number of nodes")
@click.option("-M", "--nodes-max", type=click.IntRange(min=0), help="Maximum number of nodes")
@click.option("-f", "--config-file", type=click.Path(dir_okay=False), help="ClusterConfig YAML file")
@click.option("--region", help="AWS region")
@click.option("--dry-run", is_flag=True, help="Show what would change without updating the stack")
@click.option("--no-wait", "no_wait", is_flag=True, help="Do not wait for the stack update to finish")
@click.pass_context
def scale_nodegroup(
    ctx,
    cluster: Optional[str],
    name: Optional[str],
    nodes: Optional[int],
    nodes_min: Optional[int],
    nodes_max: Optional[int],
    config_file: Optional[str],
    region: Optional[str],
    dry_run: bool,
    no_wait: bool,
):
    """
    Scale a nodegroup by updating its CloudFormation stack.
    """
    settings: Settings = ctx.obj["settings"]

    overrides: Dict[str, Any] = {}
    if nodes is not None:
        overrides["desired_capacity"] = nodes
    if nodes_min is not None:
        overrides["min_size"] = nodes_min
    if nodes_max is not None:
        overrides["max_size"] = nodes_max

    try:
        if config_file:
            cluster_config = load_cluster_config(config_file)
            if not name:
                raise click.UsageError("--name is required")
            cluster = cluster or cluster_config.metadata.name
            region = region or cluster_config.metadata.region
            spec = dataclasses.replace(cluster_config.nodegroup_spec(name), **overrides)
        else:
            if not cluster or not name:
                raise click.UsageError("--cluster and --name are required without --config-file")
            if not overrides:
                raise click.UsageError("at least one of --nodes, --nodes-min, --nodes-max must be specified")
            spec = NodeGroupSpec(name=name, **overrides)

        manager = _make_manager(settings, cluster, region)
        changed = manager.scale_nodegroup(spec, wait=not no_wait, dry_run=dry_run)
    except NodeGroupError as e:
        _fail(str(e))

    if not changed:
        click.echo(f"No change for nodegroup {spec.name} in cluster {cluster}")
    elif dry_run:
        click.echo(f"Nodegroup {spec.name} in cluster {cluster} would be scaled (dry run)")
    else:
        click.echo(f"Nodegroup {spec.name} in cluster {cluster} scaled")


if __name__ == "__main__":
    main()
