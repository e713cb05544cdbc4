"""Command-line interface for invoking pipeline stages locally."""

import argparse
import json
import sys
from typing import Any, Callable, Dict, List, Optional

from . import __version__
from . import handlers


def _stage_event(args: argparse.Namespace) -> Dict[str, Any]:
    event: Dict[str, Any] = {"s3Bucket": args.s3_bucket, "s3Key": args.s3_key}
    if getattr(args, "user_id", None):
        event["userId"] = args.user_id
    return event


def _load_event(path: str) -> Dict[str, Any]:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as event_file:
        return json.load(event_file)


STAGES: Dict[str, Callable[..., Dict[str, Any]]] = {
    "thumbnail": handlers.thumbnail_handler,
    "detect-face": handlers.face_detection_handler,
    "search-face": handlers.face_search_handler,
    "index-face": handlers.index_face_handler,
    "persist": handlers.persist_metadata_handler,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rider-photos",
        description="Rider Photos - invoke image ingestion stages against real AWS resources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a thumbnail (THUMBNAIL_BUCKET must be set)
  rider-photos thumbnail --s3-bucket uploads --s3-key photos/a.png --user-id u1

  # Check a photo for a single face
  rider-photos detect-face --s3-bucket uploads --s3-key photos/a.png

  # Persist the joined results of the parallel stages
  rider-photos persist --event event.json
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text, needs_user in (
        ("thumbnail", "Generate and publish a thumbnail", True),
        ("detect-face", "Require exactly one face without sunglasses", False),
        ("search-face", "Reject faces already in the collection", False),
        ("index-face", "Index the face under the user id", True),
    ):
        stage_parser = subparsers.add_parser(name, help=help_text)
        stage_parser.add_argument("--s3-bucket", required=True, help="Source S3 bucket")
        stage_parser.add_argument("--s3-key", required=True, help="Source S3 key (URL-encoded)")
        if needs_user:
            stage_parser.add_argument("--user-id", required=True, help="Rider user id")

    persist_parser = subparsers.add_parser("persist", help="Write the rider photo record")
    persist_parser.add_argument(
        "--event", required=True, help="JSON event file with parallelResult ('-' for stdin)"
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``rider-photos`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in STAGES:
        if args.command == "persist":
            event = _load_event(args.event)
        else:
            event = _stage_event(args)
        result = STAGES[args.command](event)
        print(json.dumps(result, indent=2, default=str))

    elif args.command == "version":
        print("Rider Photos CLI")
        print(f"Version {__version__}")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
