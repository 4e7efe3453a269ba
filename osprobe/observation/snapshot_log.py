"""
SnapshotLog — JSON-lines recorder for probe samples.
快照日志 —— 探针采样的 JSON 行记录器。

Each sample is written as one JSON object per line. Files are named
samples_0000.jsonl, samples_0001.jsonl, ... and a new file is started
once the current one reaches the rotation size. On restart the recorder
continues in the newest existing file.

每次采样写成一行一个 JSON 对象。文件命名为 samples_0000.jsonl、
samples_0001.jsonl……当前文件达到轮转大小后开启新文件。
重启后记录器会在最新的已有文件中继续写入。

Line format / 行格式:
    {"seq": 1, "timestamp": 1700000000000, "cpu": {...}, "mem": {...}, ...}
"""

import json
import logging
import os
from typing import Optional

from osprobe.environment.os_stats import OsStats

logger = logging.getLogger(__name__)

_PREFIX = "samples_"
_SUFFIX = ".jsonl"


class SnapshotLog:
    """
    Append-only JSONL recorder with size-based rotation.
    按大小轮转的只追加 JSONL 记录器。

    Parameters / 参数
    ----------
    log_dir : str
        Directory for sample files (default "data/samples").
        采样文件目录（默认 "data/samples"）。
    rotation_mb : float
        Maximum size per file in MB before rotating (default 10).
        单个文件轮转前的最大大小（MB，默认 10）。
    """

    def __init__(self, log_dir: str = "data/samples", rotation_mb: float = 10.0):
        self._log_dir = log_dir
        self._rotation_bytes = int(rotation_mb * 1024 * 1024)
        self._record_count: int = 0
        self._ends_mid_line: bool = False

        os.makedirs(log_dir, exist_ok=True)

        self._current_file_index: int = self._find_latest_file_index()
        self._seq: int = self._count_existing_records()

    # ------------------------------------------------------------------
    # Public API / 公共接口
    # ------------------------------------------------------------------

    def append(self, stats: OsStats) -> dict:
        """
        Write one sample. Returns the record as written.
        写入一次采样，返回写入的记录。
        """
        self._maybe_rotate()
        self._seq += 1
        record = {"seq": self._seq, **stats.to_dict()}
        line = json.dumps(record, separators=(",", ":"))
        with open(self.current_file_path, "a", encoding="utf-8") as f:
            if self._ends_mid_line:
                f.write("\n")
                self._ends_mid_line = False
            f.write(line + "\n")
        self._record_count += 1
        return record

    def read_all(self) -> list[dict]:
        """
        Read every record from every file, oldest first.
        按从旧到新的顺序读取所有文件中的所有记录。
        """
        records = []
        for path in self.file_paths():
            with open(path, "r", encoding="utf-8") as f:
                for raw in f:
                    record = _decode_line(raw)
                    if record is not None:
                        records.append(record)
        return records

    def file_paths(self) -> list[str]:
        names = sorted(
            n for n in os.listdir(self._log_dir)
            if n.startswith(_PREFIX) and n.endswith(_SUFFIX)
        )
        return [os.path.join(self._log_dir, n) for n in names]

    @property
    def record_count(self) -> int:
        """Records written in this session. / 本次会话写入的记录数。"""
        return self._record_count

    @property
    def current_file_path(self) -> str:
        return os.path.join(self._log_dir, f"{_PREFIX}{self._current_file_index:04d}{_SUFFIX}")

    # ------------------------------------------------------------------
    # Rotation & recovery / 轮转与恢复
    # ------------------------------------------------------------------

    def _maybe_rotate(self) -> None:
        path = self.current_file_path
        if os.path.exists(path) and os.path.getsize(path) >= self._rotation_bytes:
            self._current_file_index += 1

    def _find_latest_file_index(self) -> int:
        max_idx = 0
        for fname in os.listdir(self._log_dir):
            if fname.startswith(_PREFIX) and fname.endswith(_SUFFIX):
                try:
                    max_idx = max(max_idx, int(fname[len(_PREFIX):-len(_SUFFIX)]))
                except ValueError:
                    pass
        return max_idx

    def _count_existing_records(self) -> int:
        """Resume the sequence number after the last recorded sample. / 从最后一条记录之后继续序号。"""
        last: Optional[int] = None
        path = self.current_file_path
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                for raw in f:
                    self._ends_mid_line = not raw.endswith("\n")
                    record = _decode_line(raw)
                    if record is not None:
                        last = record.get("seq", last)
        return last or 0


def _decode_line(raw: str) -> Optional[dict]:
    """
    One JSONL record, or None for a blank or undecodable line.
    Undecodable lines are left by a crash in the middle of a write.
    单条 JSONL 记录；空行或无法解码的行返回 None（写入中途崩溃会留下这样的行）。
    """
    raw = raw.strip()
    if not raw:
        return None
    try:
        record = json.loads(raw)
    except ValueError:
        logger.debug("skipping undecodable record: %.80s", raw)
        return None
    return record if isinstance(record, dict) else None
