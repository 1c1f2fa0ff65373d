"""NFS server per-procedure / per-operation name tables.

proc2 / proc3 / proc4 / proc4ops 行のカウンタは位置で並んでいる。
ここでは位置 → 名前の対応表だけを持つ (不変データ)。

NFSv4 operation 番号は RFC 7530 (v4.0), RFC 5661 (v4.1),
RFC 7862 (v4.2), RFC 8276 (xattr) に従う。
0, 1 は未使用、2 は将来用の予約スロット。
"""

from __future__ import annotations


NFS2_PROCEDURES: tuple[str, ...] = (
    "null", "getattr", "setattr", "root", "lookup", "readlink",
    "read", "wrcache", "write", "create", "remove", "rename",
    "link", "symlink", "mkdir", "rmdir", "readdir", "fsstat",
)

NFS3_PROCEDURES: tuple[str, ...] = (
    "null", "getattr", "setattr", "lookup", "access", "readlink",
    "read", "write", "create", "mkdir", "symlink", "mknod",
    "remove", "rmdir", "rename", "link", "readdir", "readdirplus",
    "fsstat", "fsinfo", "pathconf", "commit",
)

NFS4_PROCEDURES: tuple[str, ...] = ("null", "compound")

NFS4_OPERATIONS: tuple[str, ...] = (
    # 予約スロット
    "op0_unused", "op1_unused", "op2_future",
    # v4.0 (3-39)
    "access", "close", "commit", "create", "delegpurge", "delegreturn",
    "getattr", "getfh", "link", "lock", "lockt", "locku",
    "lookup", "lookupp", "nverify", "open", "openattr", "open_confirm",
    "open_downgrade", "putfh", "putpubfh", "putrootfh", "read", "readdir",
    "readlink", "remove", "rename", "renew", "restorefh", "savefh",
    "secinfo", "setattr", "setclientid", "setclientid_confirm", "verify", "write",
    "release_lockowner",
    # v4.1 (40-58)
    "backchannel_ctl", "bind_conn_to_session", "exchange_id", "create_session",
    "destroy_session", "free_stateid", "get_dir_delegation", "getdeviceinfo",
    "getdevicelist", "layoutcommit", "layoutget", "layoutreturn",
    "secinfo_no_name", "sequence", "set_ssv", "test_stateid",
    "want_delegation", "destroy_clientid", "reclaim_complete",
    # v4.2 (59-75)
    "allocate", "copy", "copy_notify", "deallocate", "io_advise",
    "layouterror", "layoutstats", "offload_cancel", "offload_status",
    "read_plus", "seek", "write_same", "clone",
    "getxattr", "setxattr", "listxattrs", "removexattr",
)


def name_at(table: tuple[str, ...], index: int) -> str:
    """位置 index の名前。表の外は将来の operation 用プレースホルダ。"""
    if 0 <= index < len(table):
        return table[index]
    return f"op{index}_future"
