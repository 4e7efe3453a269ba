"""
LoadAverageResolver — picks the best available source of load averages.
负载均值解析器 —— 选择最佳可用的负载均值来源。

    Windows  → None (no load-average concept / 无负载均值概念)
    Linux    → <proc_root>/loadavg (1, 5, 15 min), else generic
    other    → managed API 1-minute figure only / 仅托管接口的 1 分钟值

/proc/loadavg is a single line of five fields:
/proc/loadavg 是一行五个字段：

    avg1 avg5 avg15 runnable/total last_pid
    0.08 0.03 0.01  1/234          5678
"""

import logging
import math
import os
from typing import Optional

from osprobe.core.platform_family import PlatformFamily
from osprobe.environment.metric_source import ManagedMetricAccessor, MetricCapability
from osprobe.environment.os_stats import LoadAverage

logger = logging.getLogger(__name__)


def parse_loadavg(text: str) -> LoadAverage:
    """
    Parse the contents of /proc/loadavg.
    解析 /proc/loadavg 的内容。

    Only the first three fields are used; anything after them is ignored.
    仅使用前三个字段；其后的内容全部忽略。

    Raises / 抛出
    ------
    ValueError
        If the text is not exactly one line or the first three fields
        are not finite, non-negative numbers.
        如果文本不是恰好一行，或前三个字段不是有限非负数。
    """
    lines = [l for l in text.splitlines() if l.strip()]
    if len(lines) != 1:
        raise ValueError(f"expected one line, got {len(lines)}")
    fields = lines[0].split()
    if len(fields) < 3:
        raise ValueError(f"expected at least 3 fields, got {len(fields)}")
    values = [float(f) for f in fields[:3]]
    for v in values:
        if not math.isfinite(v) or v < 0:
            raise ValueError(f"invalid load average {v!r}")
    return LoadAverage(values[0], values[1], values[2])


class LoadAverageResolver:
    """
    Platform-aware load average lookup with fallback.
    带回退机制的平台感知负载均值查询。

    Parameters / 参数
    ----------
    accessor : ManagedMetricAccessor
        Source of the single 1-minute figure. / 1 分钟单值的来源。
    platform : PlatformFamily
        Host platform family. / 主机平台族。
    proc_root : str
        Mount point of procfs (default "/proc"). / procfs 挂载点。
    """

    def __init__(
        self,
        accessor: ManagedMetricAccessor,
        platform: PlatformFamily,
        proc_root: str = "/proc",
    ):
        self._accessor = accessor
        self._platform = platform
        self._loadavg_path = os.path.join(proc_root, "loadavg")

    def resolve(self) -> Optional[LoadAverage]:
        if self._platform is PlatformFamily.WINDOWS:
            return None
        if self._platform is PlatformFamily.LINUX:
            text = self.read_proc_loadavg()
            if text is not None:
                try:
                    return parse_loadavg(text)
                except ValueError as e:
                    logger.debug("error parsing %s [%s]", self._loadavg_path, text.strip(), exc_info=e)
            # fall through to the managed API
        return self._managed_load_average()

    def read_proc_loadavg(self) -> Optional[str]:
        """
        Raw contents of /proc/loadavg, or None if it cannot be read.
        /proc/loadavg 的原始内容；无法读取时返回 None。
        """
        try:
            with open(self._loadavg_path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("error reading %s", self._loadavg_path, exc_info=e)
            return None

    def _managed_load_average(self) -> Optional[LoadAverage]:
        if not self._accessor.registry.has(MetricCapability.SYSTEM_LOAD_1M):
            return None
        return LoadAverage(one=self._accessor.read(MetricCapability.SYSTEM_LOAD_1M))

    @property
    def loadavg_path(self) -> str:
        return self._loadavg_path
