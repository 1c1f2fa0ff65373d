"""nfsdstat - メインエントリポイント。

/proc/net/rpc/nfsd を読んで累積カウンタを表示する。

  nfsdstat                 1回読んでテキスト表示
  nfsdstat --json          JSON で出力
  nfsdstat -i 5 -n 12      5秒ごとに12回読み直す (毎回フルパース)

proc のマウントポイントは --proc-root か環境変数 NFSDSTAT_PROC_ROOT で変更できる。
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time

from nfsdstat.collectors.nfsd import NfsdCollector, NfsdParseError, NfsdStats
from nfsdstat.logging_config import setup_logging


logger = logging.getLogger(__name__)


def _build_collector(args: argparse.Namespace) -> NfsdCollector:
    return NfsdCollector(proc_root=args.proc_root, path=args.file)


def _render(stats: NfsdStats, args: argparse.Namespace) -> str:
    if args.json:
        return json.dumps(stats.as_dict(), indent=2 if args.pretty else None)
    from nfsdstat.ui.text_renderer import render_text
    return render_text(
        stats,
        color=not args.no_color and sys.stdout.isatty(),
        nonzero_only=not args.all,
    )


def _run_once(args: argparse.Namespace) -> int:
    """1回読んで出力。失敗時は終了コード 1。"""
    collector = _build_collector(args)
    try:
        stats = collector.read()
    except (OSError, NfsdParseError) as e:
        print(f"nfsdstat: {collector.path}: {e}", file=sys.stderr)
        return 1
    print(_render(stats, args))
    return 0


def _run_loop(args: argparse.Namespace) -> int:
    """interval 秒ごとに読み直す。失敗したサイクルは飛ばして続行。"""
    collector = _build_collector(args)
    done = 0
    while args.count <= 0 or done < args.count:
        if done:
            time.sleep(args.interval)
        stats = collector.collect()
        done += 1
        if stats is None:
            continue
        print(_render(stats, args), flush=True)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="nfsdstat",
        description="Show NFS server statistics from /proc/net/rpc/nfsd",
    )
    parser.add_argument(
        "--proc-root", default=None,
        help="proc filesystem mount point (default: $NFSDSTAT_PROC_ROOT or /proc)",
    )
    parser.add_argument(
        "--file", default=None,
        help="Parse this file instead of <proc-root>/net/rpc/nfsd",
    )
    parser.add_argument(
        "-i", "--interval", type=float, default=None,
        help="Re-read every INTERVAL seconds",
    )
    parser.add_argument(
        "-n", "--count", type=int, default=0,
        help="Number of reads with --interval (default: 0 = forever)",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="JSON output",
    )
    parser.add_argument(
        "--pretty", action="store_true",
        help="Indent JSON output",
    )
    parser.add_argument(
        "-a", "--all", action="store_true",
        help="Also show zero per-operation counters",
    )
    parser.add_argument(
        "--no-color", action="store_true",
        help="Disable ANSI colors",
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--detect", action="store_true",
        help="Check whether the nfsd stats file exists and exit",
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.detect:
        collector = _build_collector(args)
        status = "available" if collector.available() else "not found"
        print(f"  {'nfsd':8s}: {status} ({collector.path})")
        return 0 if collector.available() else 1

    if args.interval is not None:
        if args.interval <= 0:
            parser.error("--interval must be positive")
        try:
            return _run_loop(args)
        except KeyboardInterrupt:
            return 0

    return _run_once(args)


if __name__ == "__main__":
    sys.exit(main())
