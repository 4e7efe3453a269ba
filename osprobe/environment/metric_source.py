"""
MetricSource — capability-gated access to the managed metrics API.
指标源 —— 受能力门控的托管指标接口访问。

The managed API (psutil) does not expose every metric on every
platform. At startup each optional metric is bound once to a reader;
the set of metrics that bound successfully is frozen in a
CapabilityRegistry and never changes afterwards. Reads then go through
ManagedMetricAccessor, which turns "not detected" and "the call failed"
into the same answer: None.

托管接口（psutil）并非在所有平台上都提供每个指标。启动时每个可选指标
只绑定一次读取函数；绑定成功的指标集合被冻结在 CapabilityRegistry 中，
此后不再改变。之后的读取都经过 ManagedMetricAccessor，它把"未检测到"
和"调用失败"统一为同一个结果：None。

Flow / 流程:
    MetricSource.bind()  →  CapabilityRegistry (once / 一次)
                         →  ManagedMetricAccessor.read() (every sample / 每次采样)
"""

import logging
import math
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Callable, Optional

import psutil

logger = logging.getLogger(__name__)

Reader = Callable[[], float]


class MetricCapability(Enum):
    """
    Optional metrics the managed API may or may not provide.
    托管接口可能提供、也可能不提供的可选指标。
    """
    FREE_PHYSICAL_MEMORY  = auto()  # bytes / 字节
    TOTAL_PHYSICAL_MEMORY = auto()  # bytes / 字节
    FREE_SWAP             = auto()  # bytes / 字节
    TOTAL_SWAP            = auto()  # bytes / 字节
    SYSTEM_LOAD_1M        = auto()  # 1-minute load average / 1 分钟负载均值
    SYSTEM_CPU_LOAD       = auto()  # fraction 0-1 / 比例 0-1


# ======================================================================
# Platform adapters / 平台适配器
# ======================================================================

class MetricSource(ABC):
    """
    A platform adapter that knows how to read each optional metric.
    知道如何读取各个可选指标的平台适配器。
    """

    @abstractmethod
    def bind(self, capability: MetricCapability) -> Reader:
        """
        Return a zero-argument reader for ``capability``.

        Must not perform the read itself. Raise (any exception) if the
        metric is not supported here.
        不得执行实际读取。如果此处不支持该指标则抛出异常（任意类型）。
        """


# capability → (psutil attribute, extractor applied to the bound function)
_PSUTIL_BINDINGS: dict[MetricCapability, tuple[str, Callable[[Callable], float]]] = {
    MetricCapability.FREE_PHYSICAL_MEMORY:  ("virtual_memory", lambda fn: fn().free),
    MetricCapability.TOTAL_PHYSICAL_MEMORY: ("virtual_memory", lambda fn: fn().total),
    MetricCapability.FREE_SWAP:             ("swap_memory", lambda fn: fn().free),
    MetricCapability.TOTAL_SWAP:            ("swap_memory", lambda fn: fn().total),
    MetricCapability.SYSTEM_LOAD_1M:        ("getloadavg", lambda fn: fn()[0]),
    MetricCapability.SYSTEM_CPU_LOAD:       ("cpu_percent", lambda fn: fn(interval=None) / 100.0),
}


class PsutilMetricSource(MetricSource):
    """
    Production adapter backed by psutil.
    基于 psutil 的生产环境适配器。
    """

    def __init__(self):
        # First cpu_percent call with interval=None returns a meaningless
        # 0.0; prime it so the first real sample measures a real interval.
        # 首次调用 cpu_percent(interval=None) 返回无意义的 0.0；
        # 先预热，使第一次真实采样测量的是真实区间。
        try:
            psutil.cpu_percent(interval=None)
        except (PermissionError, OSError, SystemError):
            pass

    def bind(self, capability: MetricCapability) -> Reader:
        attr, extract = _PSUTIL_BINDINGS[capability]
        fn = getattr(psutil, attr)  # AttributeError → not supported
        return lambda: extract(fn)


# ======================================================================
# Registry + accessor / 注册表 + 访问器
# ======================================================================

class CapabilityRegistry:
    """
    Binds every MetricCapability once and remembers which succeeded.
    对每个 MetricCapability 绑定一次并记住哪些成功了。

    Immutable after construction, so one instance can be shared by
    any number of callers.
    构造后不可变，因此一个实例可以被任意多个调用方共享。

    Parameters / 参数
    ----------
    source : MetricSource
        Adapter to bind against. / 要绑定的适配器。
    """

    def __init__(self, source: MetricSource):
        self._readers: dict[MetricCapability, Reader] = self._detect(source)
        self._capabilities = frozenset(self._readers)

    @staticmethod
    def _detect(source: MetricSource) -> dict[MetricCapability, Reader]:
        readers: dict[MetricCapability, Reader] = {}
        for cap in MetricCapability:
            try:
                readers[cap] = source.bind(cap)
            except Exception as e:
                logger.debug("metric %s not available: %s", cap.name, e)
        return readers

    def has(self, capability: MetricCapability) -> bool:
        """Non-raising check. / 不抛异常的检查。"""
        return capability in self._capabilities

    def reader(self, capability: MetricCapability) -> Optional[Reader]:
        return self._readers.get(capability)

    @property
    def capabilities(self) -> frozenset[MetricCapability]:
        """Metrics detected at startup. / 启动时检测到的指标。"""
        return self._capabilities


class ManagedMetricAccessor:
    """
    Reads capability-gated metrics, never raising.
    读取受能力门控的指标，从不抛出异常。
    """

    def __init__(self, registry: CapabilityRegistry):
        self._registry = registry

    def read(self, capability: MetricCapability) -> Optional[float]:
        """
        Current value of ``capability``, or None if unavailable.
        ``capability`` 的当前值；不可用时返回 None。

        Undetected metrics return None without touching the API. A
        failing call, or a value that is not a finite non-negative
        number, also yields None.
        未检测到的指标直接返回 None，不触碰接口。调用失败，或返回值不是
        有限的非负数，同样返回 None。
        """
        reader = self._registry.reader(capability)
        if reader is None:
            return None
        try:
            value = reader()
            if value is None or not math.isfinite(value) or value < 0:
                return None
        except Exception as e:
            logger.debug("error reading %s", capability.name, exc_info=e)
            return None
        return value

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry
