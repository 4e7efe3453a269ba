"""
PlatformFamily — which kind of host the probe is running on.
平台族 —— 探针当前运行在哪一类主机上。

The load-average resolver and the cgroup reader both branch on this
value, so it is detected once and passed around explicitly instead of
being re-checked inside every component.

负载均值解析器和 cgroup 读取器都依据此值分支，因此只检测一次，
并显式传递，而不是在每个组件内部重复检查。
"""

from enum import Enum

import psutil


class PlatformFamily(Enum):
    """
    Host operating-system families the probe distinguishes.
    探针区分的主机操作系统族。
    """
    LINUX = "linux"
    WINDOWS = "windows"
    MACOS = "macos"
    OTHER = "other"


def current_platform() -> PlatformFamily:
    """
    Detect the platform family of the running interpreter.
    检测当前解释器所在的平台族。
    """
    if psutil.LINUX:
        return PlatformFamily.LINUX
    if psutil.WINDOWS:
        return PlatformFamily.WINDOWS
    if psutil.MACOS:
        return PlatformFamily.MACOS
    return PlatformFamily.OTHER
