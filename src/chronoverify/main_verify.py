"""Verify one image from the command line.

Streams the reasoning log while the pipeline runs, then renders the report
(or the failure banner). Satellite lookups go through the credential proxy
at BACKEND_API_URL, so start `chronoverify-proxy` first.

Usage:
    chronoverify-verify photo.jpg --region "Gaza City" [--claimed 2024-10-15T14:30]
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.text import Text

from .errors import UnsupportedMediaError
from .log import setup_logging
from .pipeline.session import VerificationSession
from .rendering.report_format import LOG_STYLES, render_log_entry, render_report_pane
from .schemas.evidence import MediaFile
from .schemas.outputs import LogEntry

console = Console()


def print_entry(entry: LogEntry):
    console.print(Text(render_log_entry(entry), style=LOG_STYLES[entry.kind]))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Geolocate and time-verify an image")
    p.add_argument("image", type=Path, help="Image file to analyze")
    p.add_argument("--region", required=True, help="Known region, e.g. 'Gaza City'")
    p.add_argument("--claimed", default=None, help="Claimed capture timestamp (ISO 8601); omit to determine it")
    p.add_argument("--json", action="store_true", help="Print the report as JSON instead of Markdown")
    p.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()
    setup_logging(args.log_level)

    if not args.image.is_file():
        console.print(f"[red]No such file: {args.image}[/red]")
        return 2

    try:
        media = MediaFile.from_path(args.image)
    except UnsupportedMediaError as e:
        console.print(f"[red]{e}[/red]")
        return 2

    session = VerificationSession(listener=print_entry)
    report = session.run(media, args.claimed, args.region)

    console.rule("Report")
    if report is not None and args.json:
        console.print_json(report.model_dump_json(by_alias=True))
    else:
        console.print(Markdown(render_report_pane(session)))
    return 0 if report is not None else 1


if __name__ == "__main__":
    sys.exit(main())
