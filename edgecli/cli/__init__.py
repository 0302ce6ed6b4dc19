"""
edgecli - Command Line Interface

This package provides the argument parser and command handlers. Process
setup (configuration bootstrap, background refresh, exit codes) lives in
edgecli.main.

Command structure: edgecli <resource> <action> [options]
"""
import argparse

from .commands import config_cmd, logging_cmd, stats, vcl, version
from .utils import AppContext, global_flags


def create_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with every command group registered."""
    parser = argparse.ArgumentParser(
        prog="edgecli",
        description="edgecli - manage edge platform services from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[global_flags()],
        epilog="""
Resources:
  logging   Manipulate logging endpoints (papertrail, openstack)
  stats     View realtime stats for a service
  vcl       Manipulate VCL snippets
  config    Inspect the local configuration
  version   Display version information
  update    Update the CLI to the latest version

Examples:
  edgecli logging papertrail list --service-id <id> --version latest
  edgecli logging openstack create -n logs --version 3 --autoclone --bucket b \\
      --access-key k --user u --url https://auth.example.com
  edgecli stats realtime --service-id <id> --format json
  edgecli vcl snippet create --name waf --type recv --content snippet.vcl --version latest --autoclone
  edgecli config show --json
  edgecli update
"""
    )
    subparsers = parser.add_subparsers(dest="resource", help="Resource to manage")

    # Register command groups from each module
    logging_cmd.register_commands(subparsers)
    stats.register_commands(subparsers)
    vcl.register_commands(subparsers)
    config_cmd.register_commands(subparsers)
    version.register_commands(subparsers)

    return parser


def dispatch(args, ctx: AppContext):
    """Run the handler selected by the parsed arguments."""
    args.func(args, ctx)


__all__ = ['create_parser', 'dispatch', 'AppContext']
