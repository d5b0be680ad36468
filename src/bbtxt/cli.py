from __future__ import annotations

import argparse
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bbtxt",
        description="BBTXT annotation loader and batch prefetch toolkit",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Parse a BBTXT file and emit a health report")
    validate.add_argument("--source", required=True, help="BBTXT annotation file")
    validate.add_argument("--image-root", help="Directory that relative image paths resolve against")
    validate.add_argument("--max-boxes", type=int, default=20, help="Max boxes kept per image")
    validate.add_argument("--report", help="Optional output report JSON path")

    preview = subparsers.add_parser("preview", help="Run the prefetch pipeline for a few batches")
    preview.add_argument("--config", help="Path to TOML/YAML/JSON config file")
    preview.add_argument("--source", help="BBTXT annotation file")
    preview.add_argument("--image-root", help="Directory that relative image paths resolve against")
    preview.add_argument("--height", type=int, help="Network input height")
    preview.add_argument("--width", type=int, help="Network input width")
    preview.add_argument("--reference-size", type=int, help="Target size of the chosen box's longer side")
    preview.add_argument("--batch-size", type=int, help="Images per batch")
    preview.add_argument("--max-boxes", type=int, help="Max boxes kept per image")
    preview.add_argument("--mirror-probability", type=float, help="Probability of a horizontal flip")
    preview.add_argument("--seed", type=int, help="Master seed for shuffling and augmentation")
    shuffle = preview.add_mutually_exclusive_group()
    shuffle.add_argument("--shuffle", dest="shuffle", action="store_true", default=None, help="Shuffle records")
    shuffle.add_argument("--no-shuffle", dest="shuffle", action="store_false", help="Keep file order")
    preview.add_argument("--queue-depth", type=int, help="Ready batches buffered ahead of the consumer")
    preview.add_argument("--producers", type=int, help="Producer thread count")
    preview.add_argument("--batches", type=int, default=10, help="Number of batches to pull")
    preview.add_argument("--dump-dir", help="Write de-normalized images with boxes drawn here")
    preview.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    preview.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level")
    preview.add_argument("--prometheus", action="store_true", help="Enable Prometheus metrics endpoint")
    preview.add_argument("--prometheus-port", type=int, help="Prometheus bind port")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    repo_root = Path.cwd()

    if args.command == "validate":
        from bbtxt.commands.validate import run_validate

        return run_validate(args, repo_root)
    if args.command == "preview":
        from bbtxt.commands.preview import run_preview

        return run_preview(args, repo_root)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
