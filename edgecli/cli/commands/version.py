"""Version and self-update CLI commands."""
from ..utils import global_flags
from edgecli import __version__
from edgecli.update import SelfUpdater, parse_version


def register_commands(parent_subparsers):
    """Register the 'version' and 'update' commands."""
    parser_version = parent_subparsers.add_parser(
        "version", parents=[global_flags()], help="Display version information for the CLI"
    )
    parser_version.set_defaults(func=handle_version)

    parser_update = parent_subparsers.add_parser(
        "update", parents=[global_flags()], help="Update the CLI to the latest version"
    )
    parser_update.set_defaults(func=handle_update)


def _newer_release(known: str) -> bool:
    if not known:
        return False
    try:
        return parse_version(known) > parse_version(__version__)
    except ValueError:
        return False


def handle_version(args, ctx):
    """Handle 'version' command."""
    ctx.out.write(f"edgecli version {__version__}\n")
    known = ctx.config.cli.version
    if _newer_release(known):
        ctx.out.write(f"\nA new version of the CLI is available ({known}). Run `edgecli update` to install it.\n")


def handle_update(args, ctx):
    """Handle 'update' command."""
    updater = SelfUpdater(__version__, ctx.versioner, out=ctx.out, verbose=ctx.verbose)
    updater.run()
