"""Service statistics CLI commands."""
import json
import time
from datetime import datetime, timezone

import requests

from ..utils import global_flags, resolve_service_id
from edgecli.errors import ApiError
from edgecli.logging_config import get_logger

logger = get_logger(__name__)

# Seconds to wait before polling again after a failed request
RETRY_DELAY = 1.0

# Width of a formatted stats line, label and value included
LINE_WIDTH = 50


def register_commands(parent_subparsers):
    """Register the 'stats' command group with its subcommands."""
    parser = parent_subparsers.add_parser(
        "stats",
        help="View statistics for a service",
        description="View live statistics for a service."
    )
    subparsers = parser.add_subparsers(dest="action", help="Action to perform")

    parser_realtime = subparsers.add_parser(
        "realtime", parents=[global_flags()], help="View realtime stats for a service"
    )
    parser_realtime.add_argument("-s", "--service-id", dest="service_id",
                                 help="Service ID (falls back to EDGECLI_SERVICE_ID, then edgecli.toml)")
    parser_realtime.add_argument("--service-name", dest="service_name", help="The name of the service")
    parser_realtime.add_argument("--format", choices=["json"], help="Output format (json)")
    parser_realtime.set_defaults(func=handle_realtime)


def _line(label: str, value) -> str:
    return f"{label}{str(value).rjust(LINE_WIDTH - len(label))}\n"


def _num(stats: dict, key: str):
    return stats.get(key) or 0


def format_block(out, service_id: str, stats: dict):
    """Write one block of aggregated stats as aligned text."""
    hits = _num(stats, "hits")
    miss = _num(stats, "miss")
    hit_rate = hits / (hits + miss) * 100 if hits + miss else 0.0
    avg_hit = _num(stats, "hits_time") / hits * 1e6 if hits else 0.0
    avg_miss = _num(stats, "miss_time") / miss * 1e6 if miss else 0.0
    start = datetime.fromtimestamp(int(_num(stats, "start_time")), timezone.utc)

    out.write(_line("Service ID:", service_id))
    out.write(_line("Start Time:", start.strftime("%Y-%m-%d %H:%M:%S +0000 UTC")))
    out.write("-" * LINE_WIDTH + "\n")
    out.write(_line("Hit Rate:", f"{hit_rate:.2f}%"))
    out.write(_line("Avg Hit Time:", f"{avg_hit:.2f}µs"))
    out.write(_line("Avg Miss Time:", f"{avg_miss:.2f}µs"))
    out.write("\n")
    out.write(_line("Request BW:", _num(stats, "req_header_bytes") + _num(stats, "req_body_bytes")))
    out.write(_line("  Headers:", _num(stats, "req_header_bytes")))
    out.write(_line("  Body:", _num(stats, "req_body_bytes")))
    out.write("\n")
    out.write(_line("Response BW:", _num(stats, "resp_header_bytes") + _num(stats, "resp_body_bytes")))
    out.write(_line("  Headers:", _num(stats, "resp_header_bytes")))
    out.write(_line("  Body:", _num(stats, "resp_body_bytes")))
    out.write("\n")
    out.write(_line("Requests:", _num(stats, "requests")))
    out.write(_line("  Hit:", hits))
    out.write(_line("  Miss:", miss))
    out.write(_line("  Pass:", _num(stats, "pass")))
    out.write(_line("  Synth:", _num(stats, "synth")))
    out.write(_line("  Error:", _num(stats, "errors")))
    out.write(_line("  Uncacheable:", _num(stats, "uncacheable")))
    out.write("\n")


def render_text(out, service_id: str, block: dict):
    # Realtime blocks nest the numbers under "aggregated" and carry the
    # start time as "recorded".
    stats = dict(block.get("aggregated") or {})
    stats["start_time"] = block.get("recorded", 0)
    stats.pop("miss_histogram", None)
    format_block(out, service_id, stats)


def render_json(out, service_id: str, block: dict):
    out.write(json.dumps(block, separators=(",", ":")) + "\n")


def poll_realtime(client, service_id: str, render, out, polls=None, sleep=time.sleep):
    """
    Poll the realtime channel and render every block received.

    Runs until interrupted, or for `polls` requests when given. A failed
    request is reported and retried after RETRY_DELAY.
    """
    timestamp = 0
    count = 0
    while polls is None or count < polls:
        count += 1
        try:
            envelope = client.get_realtime_stats(service_id, timestamp)
        except (ApiError, requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Fetching realtime stats failed: {e}", extra={"action": "stats"})
            out.write(f"\nERROR: fetching stats: {e}.\n")
            out.flush()
            sleep(RETRY_DELAY)
            continue

        timestamp = envelope.get("timestamp", timestamp)
        for block in envelope.get("data") or []:
            render(out, service_id, block)
        out.flush()


def handle_realtime(args, ctx):
    """Handle 'stats realtime' command."""
    client = ctx.api_client()
    service_id = resolve_service_id(args, client)
    if ctx.verbose:
        ctx.out.write(f"Service ID: {service_id}\n\n")

    render = render_json if args.format == "json" else render_text
    poll_realtime(client, service_id, render, ctx.out)
