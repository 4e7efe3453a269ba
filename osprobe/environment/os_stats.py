"""
OsStats — immutable value objects produced by one probe sample.
操作系统统计 —— 单次探测采样产生的不可变值对象。

Every optional reading uses ``None`` as the "unavailable" marker.
Zero is a real reading and is never used to mean "no data".

所有可选读数都以 ``None`` 作为"不可用"标记。
零是真实读数，绝不表示"无数据"。
"""

from dataclasses import dataclass, field
from typing import Optional


def _percent(part: Optional[int], total: Optional[int]) -> Optional[int]:
    """Rounded integer percentage, or None if it cannot be computed."""
    if part is None or total is None or total <= 0:
        return None
    return int(round(100.0 * part / total))


# ======================================================================
# CPU / 处理器
# ======================================================================

@dataclass(frozen=True)
class LoadAverage:
    """
    1, 5 and 15-minute load averages.
    1、5、15 分钟负载均值。

    On the single-figure path only ``one`` can be set; ``five`` and
    ``fifteen`` are always None there.
    在单值路径上只有 ``one`` 可能有值；``five`` 和 ``fifteen`` 始终为 None。
    """
    one: Optional[float]
    five: Optional[float] = None
    fifteen: Optional[float] = None

    def as_tuple(self) -> tuple[Optional[float], Optional[float], Optional[float]]:
        return (self.one, self.five, self.fifteen)


@dataclass(frozen=True)
class Cpu:
    """
    System CPU usage (0-100) and the load average, if any.
    系统 CPU 占用率（0-100）以及负载均值（如有）。
    """
    percent: Optional[int]
    load_average: Optional[LoadAverage]


# ======================================================================
# Memory / 内存
# ======================================================================

@dataclass(frozen=True)
class Mem:
    """
    Physical memory in bytes.
    物理内存（字节）。
    """
    total: Optional[int]
    free: Optional[int]

    @property
    def used(self) -> Optional[int]:
        if self.total is None or self.free is None:
            return None
        return max(self.total - self.free, 0)

    @property
    def used_percent(self) -> Optional[int]:
        return _percent(self.used, self.total)

    @property
    def free_percent(self) -> Optional[int]:
        return _percent(self.free, self.total)


@dataclass(frozen=True)
class Swap(Mem):
    """Swap space in bytes. / 交换空间（字节）。"""


# ======================================================================
# Control groups / 控制组
# ======================================================================

@dataclass(frozen=True)
class CpuStat:
    """
    Throttling counters from ``cpu.stat``.
    来自 ``cpu.stat`` 的限流计数器。

    Attributes / 属性
    -----------------
    number_of_periods : int, optional
        Elapsed enforcement periods (``nr_periods``).
        已经过的配额周期数（``nr_periods``）。
    number_of_times_throttled : int, optional
        Periods in which the group was throttled (``nr_throttled``).
        控制组被限流的周期数（``nr_throttled``）。
    time_throttled_nanos : int, optional
        Total throttled time in nanoseconds (``throttled_time``).
        累计被限流时间，纳秒（``throttled_time``）。
    """
    number_of_periods: Optional[int] = None
    number_of_times_throttled: Optional[int] = None
    time_throttled_nanos: Optional[int] = None


@dataclass(frozen=True)
class Cgroup:
    """
    CPU accounting for the control groups this process belongs to.
    本进程所属控制组的 CPU 记账信息。

    ``cpu_cfs_quota_micros`` of -1 means the group has no quota.
    ``cpu_cfs_quota_micros`` 为 -1 表示该控制组没有配额。
    """
    cpu_acct_control_group: str
    cpu_acct_usage_nanos: int
    cpu_control_group: str
    cpu_cfs_period_micros: int
    cpu_cfs_quota_micros: int
    cpu_stat: CpuStat = field(default_factory=CpuStat)


# ======================================================================
# Snapshot / 快照
# ======================================================================

@dataclass(frozen=True)
class OsStats:
    """
    One point-in-time sample of the host.
    主机的一次时间点采样。
    """
    timestamp: int
    cpu: Cpu
    mem: Mem
    swap: Swap
    cgroup: Optional[Cgroup] = None

    def to_dict(self) -> dict:
        """
        Plain nested dict suitable for JSON encoding.
        适合 JSON 编码的普通嵌套字典。
        """
        load = self.cpu.load_average
        out = {
            "timestamp": self.timestamp,
            "cpu": {
                "percent": self.cpu.percent,
                "load_average": list(load.as_tuple()) if load is not None else None,
            },
            "mem": _memory_dict(self.mem),
            "swap": _memory_dict(self.swap),
            "cgroup": None,
        }
        if self.cgroup is not None:
            cg = self.cgroup
            out["cgroup"] = {
                "cpuacct": {
                    "control_group": cg.cpu_acct_control_group,
                    "usage_nanos": cg.cpu_acct_usage_nanos,
                },
                "cpu": {
                    "control_group": cg.cpu_control_group,
                    "cfs_period_micros": cg.cpu_cfs_period_micros,
                    "cfs_quota_micros": cg.cpu_cfs_quota_micros,
                    "stat": {
                        "number_of_elapsed_periods": cg.cpu_stat.number_of_periods,
                        "number_of_times_throttled": cg.cpu_stat.number_of_times_throttled,
                        "time_throttled_nanos": cg.cpu_stat.time_throttled_nanos,
                    },
                },
            }
        return out


def _memory_dict(m: Mem) -> dict:
    return {
        "total_in_bytes": m.total,
        "free_in_bytes": m.free,
        "used_in_bytes": m.used,
        "free_percent": m.free_percent,
        "used_percent": m.used_percent,
    }


@dataclass(frozen=True)
class OsInfo:
    """
    Static host description; read once at startup.
    静态主机描述；启动时读取一次。
    """
    refresh_interval_millis: int
    available_processors: int
    allocated_processors: int
    name: str
    arch: str
    version: str

    def to_dict(self) -> dict:
        return {
            "refresh_interval_in_millis": self.refresh_interval_millis,
            "available_processors": self.available_processors,
            "allocated_processors": self.allocated_processors,
            "name": self.name,
            "arch": self.arch,
            "version": self.version,
        }
