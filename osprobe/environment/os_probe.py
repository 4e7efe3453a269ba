"""
OsProbe — assembles one host sample from every metric source.
操作系统探针 —— 从所有指标来源汇总出一次主机采样。

    sample()
      ├─ cpu percent      ← ManagedMetricAccessor (SYSTEM_CPU_LOAD × 100)
      ├─ load average     ← LoadAverageResolver
      ├─ mem / swap       ← ManagedMetricAccessor
      └─ cgroup (Linux)   ← CgroupMembershipResolver → CgroupCpuAccountant

sample() never raises. A metric that cannot be read is None; a failure
anywhere in the cgroup chain drops the whole cgroup field for that sample.

sample() 从不抛出异常。无法读取的指标为 None；cgroup 链路中任何一处失败
都会使该次采样的整个 cgroup 字段缺失。
"""

import logging
import platform as _platform
import time
from typing import Callable, Optional

import psutil

from osprobe.core.platform_family import PlatformFamily, current_platform
from osprobe.environment.cgroup import (
    DEFAULT_CPU_ROOT,
    DEFAULT_CPUACCT_ROOT,
    CgroupCpuAccountant,
    CgroupMembershipResolver,
)
from osprobe.environment.load_average import LoadAverageResolver
from osprobe.environment.metric_source import (
    CapabilityRegistry,
    ManagedMetricAccessor,
    MetricCapability,
    MetricSource,
    PsutilMetricSource,
)
from osprobe.environment.os_stats import (
    Cgroup,
    Cpu,
    LoadAverage,
    Mem,
    OsInfo,
    OsStats,
    Swap,
)

logger = logging.getLogger(__name__)


class OsProbe:
    """
    Samples host CPU, load, memory, swap and cgroup CPU accounting.
    采样主机 CPU、负载、内存、交换空间以及 cgroup CPU 记账。

    Construct one and hand it to whatever schedules the sampling;
    capability detection happens here, once.
    构造一个实例并交给负责调度采样的组件；能力检测只在此处进行一次。

    Parameters / 参数
    ----------
    source : MetricSource, optional
        Managed metrics adapter (default: psutil). / 托管指标适配器（默认 psutil）。
    platform : PlatformFamily, optional
        Override the detected platform (useful for testing).
        覆盖检测到的平台（用于测试）。
    proc_root : str
        Mount point of procfs. / procfs 挂载点。
    cgroup_cpu_root, cgroup_cpuacct_root : str
        Mount points of the "cpu" and "cpuacct" cgroup hierarchies.
        "cpu" 与 "cpuacct" cgroup 层级的挂载点。
    time_fn : callable
        Wall clock in seconds (default time.time). / 墙上时钟（秒）。
    """

    def __init__(
        self,
        source: Optional[MetricSource] = None,
        platform: Optional[PlatformFamily] = None,
        proc_root: str = "/proc",
        cgroup_cpu_root: str = DEFAULT_CPU_ROOT,
        cgroup_cpuacct_root: str = DEFAULT_CPUACCT_ROOT,
        time_fn: Callable[[], float] = time.time,
    ):
        self._platform = platform if platform is not None else current_platform()
        self._registry = CapabilityRegistry(source if source is not None else PsutilMetricSource())
        self._accessor = ManagedMetricAccessor(self._registry)
        self._load_average = LoadAverageResolver(self._accessor, self._platform, proc_root)
        self._membership = CgroupMembershipResolver(proc_root)
        self._accountant = CgroupCpuAccountant(cgroup_cpu_root, cgroup_cpuacct_root)
        self._time_fn = time_fn

    # ------------------------------------------------------------------
    # Public API / 公共接口
    # ------------------------------------------------------------------

    def sample(self) -> OsStats:
        """
        Take one best-effort snapshot of the host.
        对主机进行一次尽力而为的快照。
        """
        cpu = Cpu(percent=self.system_cpu_percent(), load_average=self.system_load_average())
        mem = Mem(
            total=self._read_bytes(MetricCapability.TOTAL_PHYSICAL_MEMORY),
            free=self._read_bytes(MetricCapability.FREE_PHYSICAL_MEMORY),
        )
        swap = Swap(
            total=self._read_bytes(MetricCapability.TOTAL_SWAP),
            free=self._read_bytes(MetricCapability.FREE_SWAP),
        )
        cgroup = self.cgroup() if self._platform is PlatformFamily.LINUX else None
        return OsStats(
            timestamp=int(self._time_fn() * 1000),
            cpu=cpu,
            mem=mem,
            swap=swap,
            cgroup=cgroup,
        )

    os_stats = sample

    def static_info(self, refresh_interval_millis: int, allocated_processors: Optional[int] = None) -> OsInfo:
        """
        Static host description (processor counts, OS name/arch/version).
        静态主机描述（处理器数量、操作系统名称/架构/版本）。

        ``allocated_processors`` defaults to every available processor.
        ``allocated_processors`` 默认为全部可用处理器。
        """
        available = psutil.cpu_count() or 1
        return OsInfo(
            refresh_interval_millis=refresh_interval_millis,
            available_processors=available,
            allocated_processors=allocated_processors if allocated_processors is not None else available,
            name=_platform.system(),
            arch=_platform.machine(),
            version=_platform.release(),
        )

    # ------------------------------------------------------------------
    # Individual metrics / 各项指标
    # ------------------------------------------------------------------

    def system_cpu_percent(self) -> Optional[int]:
        load = self._accessor.read(MetricCapability.SYSTEM_CPU_LOAD)
        if load is None:
            return None
        return min(int(load * 100), 100)

    def system_load_average(self) -> Optional[LoadAverage]:
        try:
            return self._load_average.resolve()
        except Exception as e:
            logger.debug("error obtaining system load average", exc_info=e)
            return None

    def cgroup(self) -> Optional[Cgroup]:
        """
        CPU accounting for this process's control groups, or None.
        本进程所属控制组的 CPU 记账；失败时返回 None。
        """
        try:
            groups = self._membership.resolve()
            return self._accountant.accounting(groups)
        except (OSError, ValueError) as e:
            logger.debug("error reading control group stats", exc_info=e)
            return None

    def _read_bytes(self, capability: MetricCapability) -> Optional[int]:
        value = self._accessor.read(capability)
        return int(value) if value is not None else None

    # ------------------------------------------------------------------
    # Properties / 属性
    # ------------------------------------------------------------------

    @property
    def platform(self) -> PlatformFamily:
        return self._platform

    @property
    def capabilities(self) -> frozenset[MetricCapability]:
        return self._registry.capabilities
