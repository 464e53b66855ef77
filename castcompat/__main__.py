"""
castcompat command line entry point

Usage:
    python -m castcompat serve [--host HOST] [--port PORT]
    python -m castcompat check FILE [FILE ...]
    python -m castcompat scan DIR [--compat]
"""

import argparse
import asyncio
import json
import os
import sys
from typing import List, Optional

from . import __version__
from .compat import FilesystemError
from .config import load_config, set_config
from .logging_config import configure_logging
from .models import CompatibilityResponse
from .service import CompatService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="castcompat",
        description="Check Chromecast compatibility of media files and stream transcodes"
    )
    parser.add_argument("--config", help="Path to castcompat.yaml")
    parser.add_argument("--version", action="version", version=f"castcompat {__version__}")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", help="Bind address (overrides config)")
    serve.add_argument("--port", type=int, help="Port (overrides config)")
    serve.add_argument("--media-root", help="Library root directory (overrides config)")

    check = sub.add_parser("check", help="Classify files and print recommended commands")
    check.add_argument("files", nargs="+")
    check.add_argument("--json", action="store_true", help="Print JSON instead of text")

    scan = sub.add_parser("scan", help="List a directory")
    scan.add_argument("directory")
    scan.add_argument("--compat", action="store_true", help="Classify every file")

    return parser


async def _check(service: CompatService, files: List[str], as_json: bool) -> int:
    status = 0
    for path in files:
        try:
            result = await service.get_file_compatibility(os.path.abspath(path))
        except FilesystemError as e:
            print(f"{path}: {e}", file=sys.stderr)
            status = 1
            continue

        if as_json:
            print(json.dumps(CompatibilityResponse.from_result(result, path=path).model_dump()))
            continue

        verdict = "compatible" if result.compatible else "needs transcoding"
        print(f"{path}: {verdict}")
        print(f"  video={result.video_compatible} audio={result.audio_compatible} "
              f"container={result.container_compatible}")
        if result.subtitle_file:
            print(f"  subtitles: {result.subtitle_file}")
        if not result.compatible:
            print(f"  {result.recommended_command}")
    return status


async def _scan(service: CompatService, directory: str, compat: bool) -> int:
    try:
        entries = await service.get_directory_listing(os.path.abspath(directory), "", compat)
    except FilesystemError as e:
        print(str(e), file=sys.stderr)
        return 1

    for name, entry in sorted(entries.items()):
        if entry.is_dir:
            print(f"{name}/")
        elif compat:
            marker = "ok" if entry.compatible else ("--" if entry.compatibility else "??")
            print(f"[{marker}] {name}")
        else:
            print(name)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    config = load_config(args.config)
    set_config(config)
    configure_logging(config.logging)

    command = args.command or "serve"

    if command == "serve":
        import uvicorn
        from .api import create_app

        if getattr(args, "host", None):
            config.server.host = args.host
        if getattr(args, "port", None):
            config.server.port = args.port
        if getattr(args, "media_root", None):
            config.library.media_root = args.media_root

        uvicorn.run(
            create_app(config),
            host=config.server.host,
            port=config.server.port,
            log_config=None,
        )
        return 0

    service = CompatService(config)
    if command == "check":
        return asyncio.run(_check(service, args.files, args.json))
    return asyncio.run(_scan(service, args.directory, args.compat))


if __name__ == "__main__":
    sys.exit(main())
