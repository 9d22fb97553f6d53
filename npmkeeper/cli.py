"""
Command-line interface for npmkeeper.

The ``npmkeeper`` group resolves global state once per invocation (logging,
console color, configuration file, registry override) and hands it to
subcommands through :class:`~npmkeeper.context.NpmKeeperContext`.

Option precedence is defaults < ``npmkeeper.toml`` < command-line flags.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import click

from npmkeeper.config import load_config
from npmkeeper.commands.plan import plan
from npmkeeper.context import NpmKeeperContext
from npmkeeper.exceptions import ConfigError, NpmKeeperError
from npmkeeper.__version__ import VERSION_STRING, __version__
from npmkeeper.utils.logger import get_logger, setup_logging
from npmkeeper.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


def _validate_registry(
    ctx: click.Context, param: click.Parameter, value: Optional[str]
) -> Optional[str]:
    if value is None:
        return None

    parts = urlsplit(value.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise click.BadParameter(f"not an http(s) URL: {value!r}")
    return value.strip().rstrip("/")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to npmkeeper.toml.",
    envvar="NPMKEEPER_CONFIG",
)
@click.option(
    "--registry",
    callback=_validate_registry,
    envvar="NPM_CONFIG_REGISTRY",
    help="npm registry base URL (overrides the config file).",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v shows the plan as it is computed, -vv debugs).",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Only log errors.",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="NPMKEEPER_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="npmkeeper",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    registry: Optional[str],
    verbose: int,
    quiet: bool,
    color: bool,
) -> None:
    """npmkeeper: plan consistent npm package updates with peer dependency checks.

    \b
    Commands:
      npmkeeper plan PACKAGE...    Compute and validate an update plan

    \b
    Examples:
      npmkeeper plan @angular/core@17 @angular/cli@17
      npmkeeper --registry https://npm.example.com plan rxjs --next
      npmkeeper -v plan typescript@~5.2.0 --format json
    """
    # NO_COLOR must be settled before the console or log handler is built
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    level = _log_level(verbose, quiet)
    setup_logging(level=level, verbose=verbose > 1)
    logger.debug("%s (log level %s)", VERSION_STRING, logging.getLevelName(level))

    try:
        settings = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    if registry is not None:
        logger.debug("Registry overridden on the command line: %s", registry)
        settings.registry = registry

    state = NpmKeeperContext()
    state.config_path = settings.source_path
    state.config = settings
    state.verbose = 0 if quiet else verbose
    state.color = color
    ctx.obj = state

    logger.debug("Effective configuration: %s", settings.to_log_dict())


def _log_level(verbose: int, quiet: bool) -> int:
    """Map ``-q``/``-v`` flags to a logging level; ``-q`` wins."""
    if quiet:
        return logging.ERROR
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


cli.add_command(plan)


def main() -> int:
    """Run the CLI and translate its outcome into a process exit code.

    Returns:
        0 on success, 1 on npmkeeper or unexpected errors, Click's own code
        (usually 2) on usage errors, 130 when interrupted.
    """
    try:
        cli(standalone_mode=False)
    except click.exceptions.Exit as exc:
        return exc.exit_code
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        print_warning("\nOperation cancelled by user")
        return 130
    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130
    except NpmKeeperError as exc:
        print_error(str(exc))
        logger.debug("Details: %s", exc.details or "<none>", exc_info=True)
        return 1
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
