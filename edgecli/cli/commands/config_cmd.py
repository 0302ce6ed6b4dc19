"""Local configuration CLI commands."""
import yaml

from ..utils import global_flags, mask, print_json
from edgecli.config import bootstrap_url, load_remote
from edgecli.errors import RemediationError, NETWORK_REMEDIATION


def register_commands(parent_subparsers):
    """Register the 'config' command group with its subcommands."""
    parser = parent_subparsers.add_parser(
        "config",
        help="Inspect the local configuration",
        description="Show, locate or refresh the cached CLI configuration."
    )
    subparsers = parser.add_subparsers(dest="action", help="Action to perform")

    parser_show = subparsers.add_parser("show", parents=[global_flags()], help="Show the cached configuration")
    parser_show.add_argument("-j", "--json", action="store_true", help="Render output as JSON")
    parser_show.set_defaults(func=handle_show)

    parser_path = subparsers.add_parser("path", parents=[global_flags()], help="Print the configuration file path")
    parser_path.set_defaults(func=handle_path)

    parser_refresh = subparsers.add_parser(
        "refresh", parents=[global_flags()],
        help="Fetch the latest compatibility and versioning information now",
    )
    parser_refresh.set_defaults(func=handle_refresh)


def _redacted(config) -> dict:
    data = config.model_dump(mode="json")
    for profile in data.get("profiles", {}).values():
        profile["token"] = mask(profile.get("token", ""))
    return data


def handle_show(args, ctx):
    """Handle 'config show' command."""
    data = _redacted(ctx.config)
    if args.json:
        print_json(ctx.out, data)
    else:
        ctx.out.write(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


def handle_path(args, ctx):
    """Handle 'config path' command."""
    ctx.out.write(f"{ctx.store.path}\n")


def handle_refresh(args, ctx):
    """
    Handle 'config refresh' command.

    A background refresh already in flight is awaited and reused so the
    file is written at most once per run.
    """
    outcome = ctx.refresh.finalize()
    if outcome is not None and outcome.success:
        ctx.config = outcome.document
    else:
        url = ctx.config.cli.remote_config or bootstrap_url()
        try:
            ctx.config = load_remote(url, ctx.store, session=ctx.session, previous=ctx.config)
        except Exception as e:
            raise RemediationError(f"error refreshing configuration: {e}", NETWORK_REMEDIATION) from e

    ctx.out.write(f"SUCCESS: Configuration refreshed (last checked {ctx.config.cli.last_checked}).\n")
