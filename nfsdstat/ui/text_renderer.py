"""テキストモードレンダラー - nfsd 統計を1回分ターミナルに出力する。

カウンタは累積値をそのまま表示する (レートは出さない)。
ANSI エスケープシーケンスで見出しを色付けする。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nfsdstat.collectors.nfsd import CallCounters, NfsdStats


# ANSI 色コード
_WHITE = "\033[37m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"


def _fmt_count(v: int) -> str:
    if v >= 1_000_000_000:
        return f"{v / 1_000_000_000:.1f}G"
    if v >= 1_000_000:
        return f"{v / 1_000_000:.1f}M"
    if v >= 1_000:
        return f"{v / 1_000:.1f}K"
    return f"{v}"


def _fmt_bytes(b: int) -> str:
    if b >= 1_073_741_824:
        return f"{b / 1_073_741_824:.1f}G"
    if b >= 1_048_576:
        return f"{b / 1_048_576:.1f}M"
    if b >= 1024:
        return f"{b / 1024:.1f}K"
    return f"{b}B"


def _header(title: str, color: bool) -> str:
    if not color:
        return f"\n--- {title} ---"
    return f"\n{_BOLD}{_WHITE}--- {title} ---{_RESET}"


def _counter_rows(counters: CallCounters, nonzero_only: bool,
                  per_row: int = 3) -> list[str]:
    """name:count をカラムに並べる。"""
    cells = [
        f"{name:<20s}{_fmt_count(count):>8s}"
        for name, count in counters.as_dict().items()
        if count or not nonzero_only
    ]
    return ["  " + "  ".join(cells[i:i + per_row])
            for i in range(0, len(cells), per_row)]


def render_text(stats: NfsdStats, *, color: bool = True,
                nonzero_only: bool = True) -> str:
    """テキスト形式の出力を生成。"""
    dim = _DIM if color else ""
    reset = _RESET if color else ""
    lines: list[str] = []

    if color:
        lines.append(f"{_BOLD}{_WHITE}{'=' * 60}")
        lines.append("  nfsdstat - NFS server statistics")
        lines.append(f"{'=' * 60}{_RESET}")
    else:
        lines.append("=" * 60)
        lines.append("  nfsdstat - NFS server statistics")
        lines.append("=" * 60)

    rc = stats.reply_cache
    fh = stats.file_handles
    th = stats.threads
    lines.append(_header("Server", color))
    lines.append(f"  {'THREADS':<10s} {th.threads}  {dim}all busy:{th.fullcnt}{reset}")
    lines.append(f"  {'CACHE':<10s} hits:{_fmt_count(rc.hits)}  misses:{_fmt_count(rc.misses)}"
                 f"  nocache:{_fmt_count(rc.nocache)}")
    lines.append(f"  {'FH':<10s} stale:{fh.stale}  lookups:{_fmt_count(fh.total_lookups)}"
                 f"  anon:{fh.anon_lookups}  {dim}dir:{fh.dir_nocache} nodir:{fh.nodir_nocache}{reset}")
    lines.append(f"  {'IO':<10s} R:{_fmt_bytes(stats.input_output.read)}"
                 f"  W:{_fmt_bytes(stats.input_output.write)}")

    ra = stats.read_ahead_cache
    if ra.cache_size or any(ra.cache_histogram) or ra.not_found:
        hist = " ".join(str(b) for b in ra.cache_histogram)
        lines.append(f"  {'RA':<10s} size:{ra.cache_size}  [{hist}]  not found:{ra.not_found}")

    net = stats.network
    rpc = stats.rpc
    lines.append(_header("Network / RPC", color))
    lines.append(f"  {'NET':<10s} total:{_fmt_count(net.net_count)}  udp:{_fmt_count(net.udp_count)}"
                 f"  tcp:{_fmt_count(net.tcp_count)}  conn:{_fmt_count(net.tcp_connect)}")
    lines.append(f"  {'RPC':<10s} calls:{_fmt_count(rpc.rpc_count)}  bad:{rpc.bad_cnt}"
                 f"  {dim}fmt:{rpc.bad_fmt} auth:{rpc.bad_auth} clnt:{rpc.badc_int}{reset}")

    for title, counters in (("NFSv2", stats.v2), ("NFSv3", stats.v3),
                            ("NFSv4", stats.v4), ("NFSv4 operations", stats.v4_ops)):
        if not counters.values:
            continue
        lines.append(_header(f"{title} ({counters.values})", color))
        rows = _counter_rows(counters, nonzero_only)
        if rows:
            lines.extend(rows)
        else:
            lines.append(f"  {dim}(all zero){reset}")

    return "\n".join(lines)
