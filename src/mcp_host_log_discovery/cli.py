from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from typing import Any

from mcp_host_log_discovery.core.fs import LocalFileSystem
from mcp_host_log_discovery.core.models import LogType
from mcp_host_log_discovery.tools.discovery import (
    HARD_LIMIT,
    detect_log_format_impl,
    discover_host_logs_impl,
    parse_log_lines_impl,
)


def _split_globs(s: str) -> list[str]:
    out = [part.strip() for part in s.split(",") if part.strip()]
    if not out:
        raise argparse.ArgumentTypeError("At least one pattern must be provided")
    return out


def _print_json(data: dict[str, Any]) -> None:
    print(json.dumps(data, indent=2))


def _print_discovery(report: dict[str, Any]) -> None:
    os_info = report["os"]
    print(f"OS: {os_info['type']} {os_info.get('version') or ''}".rstrip())
    services = ", ".join(
        f"{s['type']}{'' if s['active'] else ' (inactive)'}" for s in report["services"]
    )
    print(f"Logging services: {services} (primary: {report['primary_service'] or '-'})")
    print(f"Rotation: {report['rotation']['system']}")

    classification = report["classification"]
    for title, key in (
        ("System base files", "system_base_files"),
        ("Auto-detected files", "auto_detected_files"),
        ("Custom files", "custom_files"),
    ):
        items = classification[key]
        print(f"\n{title} ({len(items)}):")
        for item in items:
            extra = ""
            if "confidence" in item and key != "system_base_files":
                extra = f" confidence={item['confidence']}"
            if "pattern_name" in item:
                extra += f" pattern={item['pattern_name']}"
            if "validated" in item:
                extra += f" validated={str(item['validated']).lower()}"
            print(f"  {item['path']}{extra}")

    failed = classification["failed_files"]
    if failed:
        print(f"\nFailed ({len(failed)}):")
        for item in failed:
            print(f"  {item['path']}: {item['reason']}")


async def _read_lines(path: str, limit: int) -> list[str]:
    if path == "-":
        return [line.rstrip("\r\n") for line in sys.stdin][:limit]
    return await LocalFileSystem().read_lines(path, limit)


async def _run(args: argparse.Namespace) -> None:
    if args.command == "discover":
        report = await discover_host_logs_impl(
            base_path=args.base_path,
            patterns=args.patterns,
            exclude_files=args.exclude_files,
            exclude_directories=args.exclude_dirs,
            host_root=args.host_root,
            max_workers=args.max_workers,
            file_timeout=args.timeout,
        )
        if args.json:
            _print_json(report)
        else:
            _print_discovery(report)
        return

    if args.command == "detect":
        detected = await detect_log_format_impl(
            log_path=args.log_path,
            sample_lines=args.sample_lines,
            include_scores=args.scores,
            host_root=args.host_root,
        )
        if args.json:
            _print_json(detected)
            return
        print(
            f"{args.log_path}: {detected['pattern_name']} "
            f"({detected['confidence']}%, {detected['sample_matches']}/{detected['total_samples']} lines, "
            f"validated={str(detected.get('validated', False)).lower()})"
        )
        for score in detected.get("scores", []):
            print(f"  {score['pattern_name']}: {score['confidence']}%")
        return

    lines = await _read_lines(args.log_path, args.max_lines)
    parsed = parse_log_lines_impl(
        lines=lines,
        log_type=args.log_type,
        limit=args.max_lines,
        custom_regex=args.regex,
    )
    if args.json:
        _print_json(parsed)
        return
    for e in parsed["entries"]:
        ts = e.get("timestamp", "-")
        source = e.get("service") or e.get("tag") or "-"
        print(f"{ts} [{e['level']}] {source}: {e['message']}")
    print(f"\nParsed {parsed['count']} entries as {parsed['log_type']}.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Discover and classify host system logs.")
    p.add_argument("--json", action="store_true", help="Print raw JSON output")
    p.add_argument("--host-root", default=None, help="Host filesystem mount point (default: $HOST_ROOT_PATH)")
    sub = p.add_subparsers(dest="command", required=True)

    d = sub.add_parser("discover", help="Detect logging services and classify log files")
    d.add_argument("--base-path", default=None, help="Directory to scan (default: /var/log)")
    d.add_argument("--patterns", type=_split_globs, default=None, help="Comma-separated file globs")
    d.add_argument("--exclude-files", type=_split_globs, default=None, help="Comma-separated file-name globs to skip")
    d.add_argument("--exclude-dirs", type=_split_globs, default=None, help="Comma-separated directory globs to skip")
    d.add_argument("--max-workers", type=int, default=None, help="Concurrent file classifications")
    d.add_argument("--timeout", type=float, default=None, help="Seconds allowed per file")

    t = sub.add_parser("detect", help="Detect the format of one log file")
    t.add_argument("log_path")
    t.add_argument("--sample-lines", type=int, default=50, help="Lines sampled for detection")
    t.add_argument("--scores", action="store_true", help="Show every pattern's confidence")

    r = sub.add_parser("parse", help="Parse a log file ('-' for stdin) into entries")
    r.add_argument("log_path")
    r.add_argument(
        "--type",
        dest="log_type",
        choices=[t.value for t in LogType],
        default=LogType.SYSLOG.value,
    )
    r.add_argument("--max", dest="max_lines", type=int, default=200, help=f"Max lines to parse (cap {HARD_LIMIT})")
    r.add_argument("--regex", default=None, help="Custom regex with named groups (implies --type custom)")
    return p


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        asyncio.run(_run(args))
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)


if __name__ == "__main__":
    main()
