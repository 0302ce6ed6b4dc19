"""Logging endpoint CLI commands."""
from ..utils import (
    add_service_flags, check_json_verbose, global_flags, print_json, print_table,
    resolve_service_id, resolve_version,
)
from edgecli.errors import RemediationError, INVALID_FLAGS_REMEDIATION

# Optional OpenStack flags: (flag, dest, type, help)
OPENSTACK_OPTIONAL_FLAGS = [
    ("--public-key", "public_key", str, "A PGP public key that the platform will use to encrypt your log files before writing them to disk"),
    ("--path", "path", str, "The path to upload logs to"),
    ("--period", "period", int, "How frequently log files are finalized so they can be available for reading (in seconds, default 3600)"),
    ("--gzip-level", "gzip_level", int, "What level of GZIP encoding to have when dumping logs (default 0, no compression)"),
    ("--format", "format", str, "Apache style log formatting"),
    ("--message-type", "message_type", str, "How the message should be formatted. One of: classic (default), loggly, logplex or blank"),
    ("--format-version", "format_version", int, "The version of the custom logging format used for the configured endpoint. Can be either 2 (default) or 1"),
    ("--response-condition", "response_condition", str, "The name of an existing condition in the configured endpoint, or leave blank to always execute"),
    ("--timestamp-format", "timestamp_format", str, "strftime specified timestamp formatting (default \"%Y-%m-%dT%H:%M:%S.000\")"),
    ("--placement", "placement", str, "Where in the generated VCL the logging call should be placed, overriding any format_version default. Can be none or waf_debug"),
    ("--compression-codec", "compression_codec", str, "The codec used for compression of your logs. One of zstd, snappy, gzip"),
]


def register_commands(parent_subparsers):
    """Register the 'logging' command group with its subcommands."""
    parser = parent_subparsers.add_parser(
        "logging",
        help="Manipulate logging endpoints",
        description="Create and list logging endpoints on a service version."
    )
    providers = parser.add_subparsers(dest="provider", help="Logging provider")

    # papertrail
    papertrail = providers.add_parser("papertrail", help="Manipulate Papertrail logging endpoints")
    papertrail_actions = papertrail.add_subparsers(dest="action", help="Action to perform")

    parser_list = papertrail_actions.add_parser(
        "list", parents=[global_flags()],
        help="List Papertrail endpoints on a service version",
    )
    add_service_flags(parser_list)
    parser_list.add_argument("-j", "--json", action="store_true", help="Render output as JSON")
    parser_list.set_defaults(func=handle_papertrail_list)

    # openstack
    openstack = providers.add_parser("openstack", help="Manipulate OpenStack logging endpoints")
    openstack_actions = openstack.add_subparsers(dest="action", help="Action to perform")

    parser_create = openstack_actions.add_parser(
        "create", aliases=["add"], parents=[global_flags()],
        help="Create an OpenStack logging endpoint on a service version",
    )
    parser_create.add_argument("-n", "--name", required=True,
                               help="The name of the OpenStack logging object. Used as a primary key for API access")
    add_service_flags(parser_create)
    parser_create.add_argument("--autoclone", action="store_true",
                               help="If the selected service version is not editable, clone it and use the clone")
    parser_create.add_argument("--bucket", required=True, help="The name of your OpenStack container")
    parser_create.add_argument("--access-key", dest="access_key", required=True, help="Your OpenStack account access key")
    parser_create.add_argument("--user", required=True, help="The username for your OpenStack account")
    parser_create.add_argument("--url", required=True, help="Your OpenStack auth url")
    for flag, dest, type_, help_text in OPENSTACK_OPTIONAL_FLAGS:
        parser_create.add_argument(flag, dest=dest, type=type_, default=None, help=help_text)
    parser_create.set_defaults(func=handle_openstack_create)


def handle_papertrail_list(args, ctx):
    """Handle 'logging papertrail list' command."""
    check_json_verbose(args, ctx)

    client = ctx.api_client()
    service_id = resolve_service_id(args, client)
    version = resolve_version(client, service_id, args.service_version, allow_active_locked=True)
    papertrails = client.list_papertrails(service_id, version.number)

    out = ctx.out
    if args.json:
        print_json(out, [p.model_dump() for p in papertrails])
        return

    if not ctx.verbose:
        print_table(out, ["SERVICE", "VERSION", "NAME"],
                    [(p.service_id, p.service_version, p.name) for p in papertrails])
        return

    out.write(f"Version: {version.number}\n")
    for i, p in enumerate(papertrails, start=1):
        out.write(f"\tPapertrail {i}/{len(papertrails)}\n")
        out.write(f"\t\tService ID: {p.service_id}\n")
        out.write(f"\t\tVersion: {p.service_version}\n")
        out.write(f"\t\tName: {p.name}\n")
        out.write(f"\t\tAddress: {p.address}\n")
        out.write(f"\t\tPort: {p.port}\n")
        out.write(f"\t\tFormat: {p.format}\n")
        out.write(f"\t\tFormat version: {p.format_version}\n")
        out.write(f"\t\tResponse condition: {p.response_condition}\n")
        out.write(f"\t\tPlacement: {p.placement}\n")
    out.write("\n")


def build_openstack_input(args) -> dict:
    """
    Transform parsed flags into the API request fields.

    Only optional flags that were given are sent.
    """
    if args.compression_codec is not None and args.gzip_level is not None:
        raise RemediationError(
            "error parsing arguments: the --compression-codec flag is mutually exclusive with the --gzip-level flag",
            INVALID_FLAGS_REMEDIATION,
        )

    fields = {
        "name": args.name,
        "bucket_name": args.bucket,
        "access_key": args.access_key,
        "user": args.user,
        "url": args.url,
    }
    for _, dest, _, _ in OPENSTACK_OPTIONAL_FLAGS:
        value = getattr(args, dest)
        if value is not None:
            fields[dest] = value
    return fields


def handle_openstack_create(args, ctx):
    """Handle 'logging openstack create' command."""
    fields = build_openstack_input(args)

    client = ctx.api_client()
    service_id = resolve_service_id(args, client)
    version = resolve_version(
        client, service_id, args.service_version,
        autoclone=args.autoclone, out=ctx.out, verbose=ctx.verbose,
    )

    endpoint = client.create_openstack(service_id, version.number, fields)
    ctx.out.write(
        f"SUCCESS: Created OpenStack logging endpoint {endpoint.name} "
        f"(service {endpoint.service_id} version {endpoint.service_version})\n"
    )
