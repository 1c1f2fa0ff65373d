"""NFS server statistics collector - reads /proc/net/rpc/nfsd.

/proc/net/rpc/nfsd の各行 (1行 = 1レコード, 空白区切り):
  rc <hits> <misses> <nocache>
  fh <stale> <totallookups> <anonlookups> <dirnocache> <nodirnocache>
  io <read> <write>
  th <threads> <fullcnt> [<スレッド使用率ヒストグラム 10 個>]
  ra <cachesize> <b0> .. <b9> <notfound>
  net <netcount> <udpcount> <tcpcount> <tcpconnect>
  rpc <rpccount> <badcnt> <badfmt> <badauth> <badclnt>
  proc2 / proc3 / proc4 / proc4ops <values> <values 個のカウンタ>

カウンタは累積値のまま返す (差分・レート計算はしない)。
不正な行が1行でもあれば読み取り全体を失敗とし、部分的な結果は返さない。
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import IO, Callable, ClassVar, Iterator, Sequence

from nfsdstat.collectors.nfsd_ops import (
    NFS2_PROCEDURES,
    NFS3_PROCEDURES,
    NFS4_OPERATIONS,
    NFS4_PROCEDURES,
    name_at,
)


logger = logging.getLogger(__name__)

PROC_ROOT_ENV = "NFSDSTAT_PROC_ROOT"
_DEFAULT_PROC_ROOT = "/proc"
_NFSD_STAT_PATH = "net/rpc/nfsd"

_U64_MAX = 2**64 - 1
_U64_DIGITS = len(str(_U64_MAX))
_ASCII_WS = " \t\n\r\v\f"
_WS_RE = re.compile(r"[ \t\n\r\v\f]+")
_TH_BUCKETS = 10
_RA_BUCKETS = 10


# === エラー ===

class NfsdParseError(ValueError):
    """nfsd 統計ファイルのパースエラー。

    record_type / lineno はディスパッチャが付与する (デコーダ単体では None)。
    """

    def __init__(self, message: str, *, record_type: str | None = None,
                 lineno: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.record_type = record_type
        self.lineno = lineno

    def __str__(self) -> str:
        if self.record_type is not None and self.lineno is not None:
            return f"{self.record_type} (line {self.lineno}): {self.message}"
        if self.record_type is not None:
            return f"{self.record_type}: {self.message}"
        if self.lineno is not None:
            return f"line {self.lineno}: {self.message}"
        return self.message


class MalformedLine(NfsdParseError):
    """キーと値が揃っていない行、または ASCII でない行。"""


class UnknownRecordType(NfsdParseError):
    """カタログにないレコード種別。"""

    def __init__(self, key: str, *, lineno: int | None = None) -> None:
        super().__init__("unknown record type", record_type=key, lineno=lineno)


class ArityMismatch(NfsdParseError):
    """値トークン数がレコード種別の要求と一致しない。"""

    def __init__(self, expected: int | tuple[int, ...], actual: int) -> None:
        if isinstance(expected, tuple):
            want = " or ".join(str(n) for n in expected)
        else:
            want = str(expected)
        super().__init__(f"expected {want} values, got {actual}")
        self.expected = expected
        self.actual = actual


class InvalidNumber(NfsdParseError):
    """符号なし 64bit 整数として読めないトークン。"""

    def __init__(self, token: str, field_name: str, index: int) -> None:
        super().__init__(
            f"invalid number {token!r} for {field_name} (value {index})")
        self.token = token
        self.field = field_name
        self.index = index


# === レコード ===

@dataclass(frozen=True)
class ReplyCache:
    """rc 行: リプライキャッシュ。"""
    hits: int = 0
    misses: int = 0
    nocache: int = 0


@dataclass(frozen=True)
class FileHandles:
    """fh 行: ファイルハンドル。"""
    stale: int = 0
    total_lookups: int = 0
    anon_lookups: int = 0
    dir_nocache: int = 0
    nodir_nocache: int = 0


@dataclass(frozen=True)
class InputOutput:
    """io 行: 読み書きバイト数。"""
    read: int = 0
    write: int = 0


@dataclass(frozen=True)
class Threads:
    """th 行: nfsd スレッド数と全スレッド使用中になった回数。

    usage_histogram はカーネルが秒数 (小数3桁) で出す10バケット。
    各バケットの意味は定義が曖昧なので位置だけで保持する。
    整数で書かれたバケット ("1") も float (1.0) に揃える。
    """
    threads: int = 0
    fullcnt: int = 0
    usage_histogram: tuple[float, ...] = (0.0,) * _TH_BUCKETS


@dataclass(frozen=True)
class ReadAheadCache:
    """ra 行: リードアヘッドキャッシュ (新しいカーネルでは出力されない)。"""
    cache_size: int = 0
    cache_histogram: tuple[int, ...] = (0,) * _RA_BUCKETS
    not_found: int = 0


@dataclass(frozen=True)
class Network:
    """net 行: パケット数と TCP 接続数。"""
    net_count: int = 0
    udp_count: int = 0
    tcp_count: int = 0
    tcp_connect: int = 0


@dataclass(frozen=True)
class RPC:
    """rpc 行: RPC 呼び出し数とエラー内訳。"""
    rpc_count: int = 0
    bad_cnt: int = 0
    bad_fmt: int = 0
    bad_auth: int = 0
    badc_int: int = 0


@dataclass(frozen=True)
class CallCounters:
    """先頭に個数 (values) を持つカウンタ列。

    counters は位置順。名前は names 表から引き、表の外の位置は
    "op<N>_future" として扱う。
    """
    values: int = 0
    counters: tuple[int, ...] = ()

    names: ClassVar[tuple[str, ...]] = ()

    def name_at(self, index: int) -> str:
        return name_at(self.names, index)

    def as_dict(self) -> dict[str, int]:
        return {self.name_at(i): c for i, c in enumerate(self.counters)}

    def __getitem__(self, key: str | int) -> int:
        if isinstance(key, int):
            return self.counters[key]
        counts = self.as_dict()
        if key in counts:
            return counts[key]
        # 既知の名前だがカーネルが出力しなかった位置
        if key in self.names:
            return 0
        raise KeyError(key)


@dataclass(frozen=True)
class V2Stats(CallCounters):
    """proc2 行: NFSv2 プロシージャ別呼び出し回数 (通常 values=18)。"""
    names: ClassVar[tuple[str, ...]] = NFS2_PROCEDURES


@dataclass(frozen=True)
class V3Stats(CallCounters):
    """proc3 行: NFSv3 プロシージャ別呼び出し回数 (通常 values=22)。"""
    names: ClassVar[tuple[str, ...]] = NFS3_PROCEDURES


@dataclass(frozen=True)
class V4Stats(CallCounters):
    """proc4 行: NFSv4 null / compound (values=2)。"""
    names: ClassVar[tuple[str, ...]] = NFS4_PROCEDURES


@dataclass(frozen=True)
class V4Ops(CallCounters):
    """proc4ops 行: NFSv4 operation 別回数。values はマイナーバージョンで変わる。"""
    names: ClassVar[tuple[str, ...]] = NFS4_OPERATIONS


@dataclass(frozen=True)
class NfsdStats:
    """/proc/net/rpc/nfsd 全体。出現しなかったレコードはゼロのまま。"""
    reply_cache: ReplyCache = field(default_factory=ReplyCache)
    file_handles: FileHandles = field(default_factory=FileHandles)
    input_output: InputOutput = field(default_factory=InputOutput)
    threads: Threads = field(default_factory=Threads)
    read_ahead_cache: ReadAheadCache = field(default_factory=ReadAheadCache)
    network: Network = field(default_factory=Network)
    rpc: RPC = field(default_factory=RPC)
    v2: V2Stats = field(default_factory=V2Stats)
    v3: V3Stats = field(default_factory=V3Stats)
    v4: V4Stats = field(default_factory=V4Stats)
    v4_ops: V4Ops = field(default_factory=V4Ops)

    def as_dict(self) -> dict[str, dict]:
        """JSON 出力用。カウンタ列は名前付きの辞書に展開する。"""
        result: dict[str, dict] = {}
        for f in fields(self):
            record = getattr(self, f.name)
            if isinstance(record, CallCounters):
                result[f.name] = {"values": record.values, **record.as_dict()}
            else:
                result[f.name] = asdict(record)
        return result


# === 行スキャナ ===

def iter_lines(stream: IO[bytes] | IO[str]) -> Iterator[tuple[int, list[str]]]:
    """ストリームを1行ずつ読み (行番号, トークン列) を返す。

    ストリームは閉じない (呼び出し側の責任)。
    """
    for lineno, raw in enumerate(stream, start=1):
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("ascii")
            except UnicodeDecodeError as e:
                raise MalformedLine(
                    f"non-ASCII data at byte {e.start}", lineno=lineno) from e
        # str.split() は \x1c-\x1f も区切りとみなすので ASCII 空白だけで分割する
        line = raw.strip(_ASCII_WS)
        yield lineno, _WS_RE.split(line) if line else []


# === デコーダ ===

def _parse_u64(token: str, field_name: str, index: int) -> int:
    # int() は "+1", " 1", "1_000" も受け付けるので数字のみを先に確認する
    if not (token.isascii() and token.isdigit()):
        raise InvalidNumber(token, field_name, index)
    # 桁数上限を超える文字列は int() 自体が ValueError になる
    if len(token) > _U64_DIGITS:
        raise InvalidNumber(token, field_name, index)
    value = int(token)
    if value > _U64_MAX:
        raise InvalidNumber(token, field_name, index)
    return value


def _parse_seconds(token: str, field_name: str, index: int) -> float:
    whole, dot, frac = token.partition(".")
    if not (whole.isascii() and whole.isdigit()):
        raise InvalidNumber(token, field_name, index)
    if dot and not (frac.isascii() and frac.isdigit()):
        raise InvalidNumber(token, field_name, index)
    return float(token)


def _expect_arity(tokens: Sequence[str], expected: int) -> None:
    if len(tokens) != expected:
        raise ArityMismatch(expected, len(tokens))


def _fixed(record_cls: type) -> Callable[[Sequence[str]], object]:
    """フィールド数 = トークン数のレコード用デコーダを作る。"""
    names = tuple(f.name for f in fields(record_cls))

    def decode(tokens: Sequence[str]) -> object:
        _expect_arity(tokens, len(names))
        return record_cls(*(
            _parse_u64(tok, name, i)
            for i, (tok, name) in enumerate(zip(tokens, names))
        ))

    return decode


def _decode_threads(tokens: Sequence[str]) -> Threads:
    if len(tokens) not in (2, 2 + _TH_BUCKETS):
        raise ArityMismatch((2, 2 + _TH_BUCKETS), len(tokens))
    threads = _parse_u64(tokens[0], "threads", 0)
    fullcnt = _parse_u64(tokens[1], "fullcnt", 1)
    if len(tokens) == 2:
        return Threads(threads, fullcnt)
    histogram = tuple(
        _parse_seconds(tok, f"usage_histogram[{i}]", i + 2)
        for i, tok in enumerate(tokens[2:])
    )
    return Threads(threads, fullcnt, histogram)


def _decode_read_ahead(tokens: Sequence[str]) -> ReadAheadCache:
    _expect_arity(tokens, _RA_BUCKETS + 2)
    cache_size = _parse_u64(tokens[0], "cache_size", 0)
    histogram = tuple(
        _parse_u64(tok, f"cache_histogram[{i}]", i + 1)
        for i, tok in enumerate(tokens[1:-1])
    )
    not_found = _parse_u64(tokens[-1], "not_found", len(tokens) - 1)
    return ReadAheadCache(cache_size, histogram, not_found)


def _declared(record_cls: type[CallCounters]) -> Callable[[Sequence[str]], CallCounters]:
    """先頭トークンが後続カウンタ数を宣言するレコード用デコーダを作る。"""

    def decode(tokens: Sequence[str]) -> CallCounters:
        if not tokens:
            raise ArityMismatch(1, 0)
        values = _parse_u64(tokens[0], "values", 0)
        rest = tokens[1:]
        if len(rest) != values:
            raise ArityMismatch(values, len(rest))
        counters = tuple(
            _parse_u64(tok, name_at(record_cls.names, i), i + 1)
            for i, tok in enumerate(rest)
        )
        return record_cls(values, counters)

    return decode


# === ディスパッチテーブル ===

@dataclass(frozen=True)
class _RecordLayout:
    attr: str                                   # NfsdStats のフィールド名
    decode: Callable[[Sequence[str]], object]


_CATALOG: dict[str, _RecordLayout] = {
    "rc":       _RecordLayout("reply_cache", _fixed(ReplyCache)),
    "fh":       _RecordLayout("file_handles", _fixed(FileHandles)),
    "io":       _RecordLayout("input_output", _fixed(InputOutput)),
    "th":       _RecordLayout("threads", _decode_threads),
    "ra":       _RecordLayout("read_ahead_cache", _decode_read_ahead),
    "net":      _RecordLayout("network", _fixed(Network)),
    "rpc":      _RecordLayout("rpc", _fixed(RPC)),
    "proc2":    _RecordLayout("v2", _declared(V2Stats)),
    "proc3":    _RecordLayout("v3", _declared(V3Stats)),
    "proc4":    _RecordLayout("v4", _declared(V4Stats)),
    "proc4ops": _RecordLayout("v4_ops", _declared(V4Ops)),
}

RECORD_TYPES: frozenset[str] = frozenset(_CATALOG)


def parse(stream: IO[bytes] | IO[str]) -> NfsdStats:
    """開いたストリームを最後まで読み NfsdStats を返す。

    最初のエラーで NfsdParseError を送出し、それ以降は読まない。
    ストリーム自体の読み取りエラー (OSError) はそのまま伝播する。
    """
    records: dict[str, object] = {}
    for lineno, tokens in iter_lines(stream):
        if not tokens:
            continue
        if len(tokens) < 2:
            raise MalformedLine("record type without values",
                                record_type=tokens[0], lineno=lineno)
        key = tokens[0]
        layout = _CATALOG.get(key)
        if layout is None:
            raise UnknownRecordType(key, lineno=lineno)
        try:
            records[layout.attr] = layout.decode(tokens[1:])
        except NfsdParseError as e:
            e.record_type = key
            e.lineno = lineno
            raise
    return NfsdStats(**records)


# === コレクター ===

def default_proc_root() -> str:
    """NFSDSTAT_PROC_ROOT があればそれを、なければ /proc を使う。"""
    return os.environ.get(PROC_ROOT_ENV) or _DEFAULT_PROC_ROOT


class NfsdCollector:
    """nfsd 統計コレクター。

    path を指定すると proc_root は無視してそのファイルを読む
    (保存済みのコピーを読む用途)。
    """

    def __init__(self, proc_root: str | os.PathLike | None = None,
                 path: str | os.PathLike | None = None) -> None:
        if path is not None:
            self.path = Path(path)
        else:
            self.path = Path(proc_root or default_proc_root()) / _NFSD_STAT_PATH

    def available(self) -> bool:
        """統計ファイルが存在するか (nfsd モジュールがロード済みか)。"""
        return self.path.exists()

    def read(self) -> NfsdStats:
        """1回読む。失敗時は OSError / NfsdParseError を送出。"""
        with open(self.path, "rb") as f:
            return parse(f)

    def collect(self) -> NfsdStats | None:
        """1回読む。失敗時はログに残して None (今回は統計なし)。"""
        try:
            stats = self.read()
        except FileNotFoundError:
            logger.warning("%s not found (nfsd not loaded?)", self.path)
            return None
        except (OSError, NfsdParseError) as e:
            logger.warning("nfsd stats unavailable: %s: %s", self.path, e)
            return None
        logger.debug("read nfsd stats from %s", self.path)
        return stats
