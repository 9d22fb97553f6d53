"""Plan command implementation for npmkeeper.

Computes the consistent set of version updates implied by a set of
requested package upgrades and reports it without touching the workspace.

The command wires together three pieces:

1. **read_workspace_dependencies** reads every declared range from the
   workspace ``package.json``.
2. **NpmRegistryProvider** serves registry packuments and installed
   manifests, fetching each package at most once per invocation.
3. **UpdateWorkflow** expands the request with package groups and unmet
   peers, resolves target versions and validates peer dependencies.

Typical usage::

    # Plan an Angular major update
    $ npmkeeper plan @angular/core@17 @angular/cli@17

    # Include pre-releases and keep going despite peer mismatches
    $ npmkeeper plan @angular/core --next --force

    # Machine-readable output
    $ npmkeeper plan rxjs@^7 --format json > plan.json
"""

from __future__ import annotations

import os
import sys
import json
import click
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from npmkeeper.config import NpmKeeperConfig
from npmkeeper.core import NpmRegistryProvider, UpdateWorkflow
from npmkeeper.context import pass_context, NpmKeeperContext
from npmkeeper.models import PackageInfo, PeerViolation
from npmkeeper.constants import (
    DEFAULT_IGNORED_DEPENDENTS,
    LATEST_DIST_TAG,
    MOST_RECENT_TOKEN,
    NPM_TOKEN_ENV,
)
from npmkeeper.exceptions import (
    FileOperationError,
    IncompatiblePeerDependenciesError,
    NpmKeeperError,
)
from npmkeeper.utils import (
    HTTPClient,
    get_logger,
    print_success,
    print_error,
    print_warning,
    print_table,
    print_unresolved,
    print_violations,
    colorize_update_type,
    find_workspace_manifest,
    read_workspace_dependencies,
)

logger = get_logger("commands.plan")


@click.command()
@click.argument("packages", nargs=-1, required=True)
@click.option(
    "--manifest",
    "-m",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Workspace package.json (default: nearest one above the current directory).",
)
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Report the plan even if peer dependencies are incompatible.",
)
@click.option(
    "--next",
    "use_next",
    is_flag=True,
    default=False,
    help="Resolve bare package names to the most recent release and admit pre-releases.",
)
@click.option(
    "--all",
    "show_all",
    is_flag=True,
    help="Also list workspace packages that would not change.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def plan(
    ctx: NpmKeeperContext,
    packages: Tuple[str, ...],
    manifest: Optional[Path],
    force: bool,
    use_next: bool,
    show_all: bool,
    format: str,
) -> None:
    """Plan updates for PACKAGES without modifying the workspace.

    Each PACKAGE is ``name``, ``name@spec`` or ``@scope/name@spec`` where
    ``spec`` is an exact version, a range or a dist-tag.

    Args:
        ctx: npmkeeper context with configuration and verbosity settings.
        packages: Requested package specifiers.
        manifest: Path to the workspace ``package.json``.
        force: Do not fail on incompatible peer dependencies.
        use_next: Prefer the most recent release and admit pre-releases.
        show_all: Include packages without an update in the report.
        format: Output format (``table`` or ``json``).

    Exits:
        0 when a consistent plan was computed, 1 on incompatible peer
        dependencies or any other error.
    """
    config = ctx.config or NpmKeeperConfig()

    try:
        requested = dict(_parse_package_spec(spec, use_next) for spec in packages)
        manifest_path = manifest or find_workspace_manifest(Path.cwd())
        if manifest_path is None:
            raise FileOperationError(
                "No package.json found in the current directory or its parents",
                operation="read",
            )

        asyncio.run(
            _plan_async(
                ctx,
                config,
                requested,
                manifest_path,
                force=force or config.force,
                allow_prerelease=use_next or config.allow_prerelease,
                show_all=show_all,
                format=format,
            )
        )
        sys.exit(0)

    except IncompatiblePeerDependenciesError as e:
        print_error(str(e))
        print_warning(
            "Peer dependency warnings mean those packages might not work "
            "correctly together. Re-run with --force to see the plan anyway."
        )
        sys.exit(1)
    except NpmKeeperError as e:
        print_error(f"{e}")
        sys.exit(1)
    except click.BadParameter:
        raise
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Error in plan command")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Async orchestration
# ---------------------------------------------------------------------------


async def _plan_async(
    ctx: NpmKeeperContext,
    config: NpmKeeperConfig,
    requested: Dict[str, Optional[str]],
    manifest_path: Path,
    *,
    force: bool,
    allow_prerelease: bool,
    show_all: bool,
    format: str,
) -> None:
    """Run the update analysis and render its result.

    Raises:
        IncompatiblePeerDependenciesError: Peer dependencies are violated and
            *force* is not set.
        NpmKeeperError: The workspace cannot be read or a package cannot be
            resolved.
    """
    show_progress: bool = format == "table" or ctx.verbose > 0

    logger.info("Reading %s...", manifest_path)
    all_dependencies = read_workspace_dependencies(manifest_path)
    logger.info("Found %d declared dependencies", len(all_dependencies))

    ignored = list(DEFAULT_IGNORED_DEPENDENTS) + list(config.ignored_packages)

    async with HTTPClient(
        timeout=config.timeout,
        max_concurrency=config.concurrent_limit,
        auth_token=os.environ.get(NPM_TOKEN_ENV),
    ) as http:
        provider = NpmRegistryProvider(
            http,
            project_root=manifest_path.parent,
            registry=config.registry,
            concurrent_limit=config.concurrent_limit,
        )
        workflow = UpdateWorkflow(provider, ignored_dependents=ignored)

        info_map = await workflow.analyze(
            requested,
            all_dependencies,
            verbose=ctx.verbose > 0,
            allow_prerelease=allow_prerelease,
            force=force,
        )

    infos = [
        info for info in info_map.values()
        if show_all or info.has_update()
    ]

    if format == "json":
        _display_json(infos, workflow.violations, sorted(workflow.unresolved))
        return

    if infos:
        _display_table(infos)

    if not show_progress:
        return

    print_unresolved(workflow.unresolved)
    print_violations(workflow.violations)

    updates = sum(1 for info in info_map.values() if info.has_update())
    if updates:
        print_success(f"\n{updates} package(s) would be updated")
    else:
        print_success("\nNothing to update")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _parse_package_spec(text: str, use_next: bool = False) -> Tuple[str, Optional[str]]:
    """Split ``name@spec`` into ``(name, spec)``.

    Bare names get the ``latest`` dist-tag, or ``next`` with ``--next``.

    Example::

        >>> _parse_package_spec("@angular/core@17")
        ('@angular/core', '17')
        >>> _parse_package_spec("rxjs")
        ('rxjs', 'latest')
    """
    spec = text.strip()
    # Skip the scope marker of scoped names
    at = spec.find("@", 1) if spec.startswith("@") else spec.find("@")

    if at == -1:
        name, version = spec, None
    else:
        name, version = spec[:at], spec[at + 1:].strip() or None

    if not name or name == "@" or name.endswith("/"):
        raise click.BadParameter(f"Invalid package specifier: {text!r}")

    if version is None:
        version = MOST_RECENT_TOKEN if use_next else LATEST_DIST_TAG

    return name, version


# ---------------------------------------------------------------------------
# Display renderers
# ---------------------------------------------------------------------------


def _display_table(infos: List[PackageInfo]) -> None:
    """Render the plan as a Rich-formatted table.

    Example::

        ┏━━━━━━━━━━━┳━━━━━━━━━━━━━━━━━┳━━━━━━━━━━━┳━━━━━━━━┳━━━━━━━━━━━━━┓
        ┃ Status    ┃ Package         ┃ Installed ┃ Target ┃ Update Type ┃
        ┡━━━━━━━━━━━╇━━━━━━━━━━━━━━━━━╇━━━━━━━━━━━╇━━━━━━━━╇━━━━━━━━━━━━━┩
        │ ⬆ UPDATE  │ @angular/core   │ 16.2.0    │ 17.0.0 │ major       │
        └───────────┴─────────────────┴───────────┴────────┴─────────────┘
    """
    data = [_create_table_row(info) for info in infos]

    column_styles: Dict[str, Dict[str, Any]] = {
        "Status": {"justify": "center", "no_wrap": True, "width": 10},
        "Package": {"style": "bold cyan", "no_wrap": True},
        "Range": {"justify": "center", "style": "dim"},
        "Installed": {"justify": "center", "style": "dim"},
        "Target": {"justify": "center", "style": "bold green"},
        "Update Type": {"justify": "center"},
        "Group": {"justify": "left", "no_wrap": False},
    }

    print_table(
        data,
        title="Update Plan",
        column_styles=column_styles,
        show_row_lines=True,
    )


def _create_table_row(info: PackageInfo) -> Dict[str, str]:
    """Build a Rich-formatted table row for a single package."""
    group = info.active.update_metadata.package_group_name or "[dim]-[/dim]"

    if info.target is None:
        return {
            "Status": "[green]✓ OK[/green]",
            "Package": info.name,
            "Range": info.package_json_range,
            "Installed": info.installed.version,
            "Target": "[dim]-[/dim]",
            "Update Type": "[dim]-[/dim]",
            "Group": group,
        }

    return {
        "Status": "[yellow]⬆ UPDATE[/yellow]",
        "Package": info.name,
        "Range": info.package_json_range,
        "Installed": info.installed.version,
        "Target": info.target.version,
        "Update Type": colorize_update_type(info.update_type or "update"),
        "Group": group,
    }


def _display_json(
    infos: List[PackageInfo],
    violations: List[PeerViolation],
    unresolved: List[str],
) -> None:
    """Render the plan as formatted JSON for machine consumption.

    Example::

        {
          "packages": [{"name": "@angular/core", "installed": "16.2.0", ...}],
          "violations": [],
          "unresolved": []
        }
    """
    data = {
        "packages": [info.to_json() for info in infos],
        "violations": [v.to_json() for v in violations],
        "unresolved": unresolved,
    }
    print(json.dumps(data, indent=2))
