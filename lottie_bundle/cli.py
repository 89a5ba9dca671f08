"""
lottie-bundle command line.

Usage:
    lottie-bundle inspect bull.lottie
    lottie-bundle convert old.lottie --to 2 -o new.lottie
    lottie-bundle optimize bull.lottie -o bull.min.lottie

``optimize`` rebuilds the archive with the duplicate image detector.
Set LOTTIE_BUNDLE_LOG_LEVEL=DEBUG to see each build phase.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from lottie_bundle import config
from lottie_bundle.archive.parser import read_manifest
from lottie_bundle.archive.zipcodec import ArchiveCodec
from lottie_bundle.bridge import convert
from lottie_bundle.bundle import Bundle
from lottie_bundle.core.errors import BundleError
from lottie_bundle.core.vocabulary import FormatVersion
from lottie_bundle.plugins import DuplicateImageDetector

logger = logging.getLogger(__name__)


def show(obj: Any, indent: int = 2) -> None:
    """Pretty-print a dict, list, or any JSON-serialisable object."""
    print(json.dumps(obj, indent=indent, default=str, ensure_ascii=False))


def describe(data: bytes) -> dict:
    """Manifest plus entry listing of an archive."""
    entries = ArchiveCodec().unpack(data)
    manifest = read_manifest(entries)
    return {
        "version":  FormatVersion.from_manifest(manifest).value,
        "manifest": manifest,
        "entries":  {path: len(raw) for path, raw in entries.items()},
    }


# ── Commands ────────────────────────────────────────────────

async def _inspect(args: argparse.Namespace) -> int:
    show(describe(Path(args.file).read_bytes()))
    return 0


async def _convert(args: argparse.Namespace) -> int:
    data = await convert(Path(args.file).read_bytes(), args.to)
    Path(args.output).write_bytes(data)
    logger.info(f"Wrote v{args.to} archive to {args.output} ({len(data)} bytes)")
    return 0


async def _optimize(args: argparse.Namespace) -> int:
    source = Path(args.file).read_bytes()
    bundle = Bundle.from_bytes(source)
    bundle.add_plugins(DuplicateImageDetector(threshold=args.threshold))
    data = await bundle.to_bytes()
    Path(args.output).write_bytes(data)
    logger.info(f"Wrote {args.output}: {len(source)} → {len(data)} bytes, {len(bundle.images)} image(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lottie-bundle", description="Inspect, convert and optimize dotLottie archives.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("inspect", help="Print manifest and entries")
    p.add_argument("file")
    p.set_defaults(handler=_inspect)

    p = sub.add_parser("convert", help="Convert between archive versions")
    p.add_argument("file")
    p.add_argument("--to", choices=["1", "2"], default="2")
    p.add_argument("-o", "--output", required=True)
    p.set_defaults(handler=_convert)

    p = sub.add_parser("optimize", help="Collapse duplicate images")
    p.add_argument("file")
    p.add_argument("-o", "--output", required=True)
    p.add_argument("--threshold", type=int, default=None, help="Perceptual hash distance (default 5)")
    p.set_defaults(handler=_optimize)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point: lottie-bundle / python -m lottie_bundle"""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(args.handler(args))
    except BundleError as e:
        logger.error(f"{e.code}: {e.message}")
        return 1
    except OSError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
