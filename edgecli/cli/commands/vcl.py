"""VCL CLI commands."""
import os

from ..utils import add_service_flags, global_flags, resolve_service_id, resolve_version

# VCL subroutines a snippet can be placed in
LOCATIONS = ["init", "recv", "hash", "hit", "miss", "pass", "fetch", "error", "deliver", "log", "none"]


def register_commands(parent_subparsers):
    """Register the 'vcl' command group with its subcommands."""
    parser = parent_subparsers.add_parser(
        "vcl",
        help="Manipulate service VCL",
        description="Manage VCL snippets on a service version."
    )
    components = parser.add_subparsers(dest="component", help="VCL component")

    snippet = components.add_parser("snippet", help="Manipulate VCL snippets")
    snippet_actions = snippet.add_subparsers(dest="action", help="Action to perform")

    parser_create = snippet_actions.add_parser(
        "create", aliases=["add"], parents=[global_flags()],
        help="Create a snippet for a particular service and version",
    )
    parser_create.add_argument("--content", required=True,
                               help="VCL snippet passed as file path or content, e.g. $(< snippet.vcl)")
    parser_create.add_argument("--name", required=True, help="The name of the VCL snippet")
    add_service_flags(parser_create)
    parser_create.add_argument("--type", dest="location", required=True, choices=LOCATIONS,
                               help="The location in generated VCL where the snippet should be placed")
    parser_create.add_argument("--autoclone", action="store_true",
                               help="If the selected service version is not editable, clone it and use the clone")
    parser_create.add_argument("--dynamic", action="store_true",
                               help="Whether the VCL snippet is dynamic or versioned")
    parser_create.add_argument("-p", "--priority", type=int, default=None,
                               help="Priority determines execution order. Lower numbers execute first")
    parser_create.set_defaults(func=handle_snippet_create)


def read_content(value: str) -> str:
    """Return the file contents if `value` names a file, otherwise `value` itself."""
    if os.path.isfile(value):
        with open(value, "r") as f:
            return f.read()
    return value


def build_snippet_input(args) -> dict:
    """Transform parsed flags into the API request fields."""
    fields = {
        "name": args.name,
        "type": args.location,
        "content": read_content(args.content),
    }
    if args.dynamic:
        fields["dynamic"] = 1
    if args.priority is not None:
        fields["priority"] = args.priority
    return fields


def handle_snippet_create(args, ctx):
    """Handle 'vcl snippet create' command."""
    fields = build_snippet_input(args)

    client = ctx.api_client()
    service_id = resolve_service_id(args, client)
    version = resolve_version(
        client, service_id, args.service_version,
        autoclone=args.autoclone, out=ctx.out, verbose=ctx.verbose,
    )

    snippet = client.create_snippet(service_id, version.number, fields)
    ctx.out.write(
        f"SUCCESS: Created VCL snippet '{snippet.name}' (service: {snippet.service_id}, "
        f"version: {snippet.service_version}, dynamic: {str(args.dynamic).lower()}, "
        f"snippet id: {snippet.id}, type: {args.location}, priority: {snippet.priority})\n"
    )
