"""
Cgroup — control-group (v1) membership and CPU accounting readers.
控制组 —— 控制组（v1）成员关系与 CPU 记账读取器。

Two steps, always run together and never cached:
两个步骤，总是一起运行，且从不缓存：

  1. CgroupMembershipResolver reads /proc/self/cgroup and maps each
     subsystem to the control group this process belongs to.
     CgroupMembershipResolver 读取 /proc/self/cgroup，把每个子系统
     映射到本进程所属的控制组。

  2. CgroupCpuAccountant reads the counter files for the "cpu" and
     "cpuacct" groups under their sysfs roots.
     CgroupCpuAccountant 在各自的 sysfs 根目录下读取 "cpu" 和
     "cpuacct" 控制组的计数器文件。

/proc/self/cgroup format / 格式:

    hierarchy-id:subsystem[,subsystem...]:/control/group/path
    4:cpu,cpuacct:/docker/abc
    1:name=systemd:/user.slice

Malformed membership lines are skipped (and logged at DEBUG); the
cgroup v2 line "0::/" carries no subsystem names and is skipped too.
Any OSError or ValueError (CgroupFormatError, or undecodable bytes in
one of the files) is meant to abort the whole cgroup reading for that
sample.

格式错误的成员关系行会被跳过（并以 DEBUG 级别记录）；cgroup v2 的
"0::/" 行不含子系统名称，同样被跳过。任何 OSError 或 ValueError
（CgroupFormatError 或文件中无法解码的字节）都应使该次采样的整个
cgroup 读取作废。
"""

import logging
import os
from typing import Iterable, Optional

from osprobe.environment.os_stats import Cgroup, CpuStat

logger = logging.getLogger(__name__)

CPU_SUBSYSTEM = "cpu"
CPUACCT_SUBSYSTEM = "cpuacct"

DEFAULT_CPU_ROOT = "/sys/fs/cgroup/cpu"
DEFAULT_CPUACCT_ROOT = "/sys/fs/cgroup/cpuacct"

# cpu.stat key → CpuStat field
_CPU_STAT_KEYS = {
    "nr_periods": "number_of_periods",
    "nr_throttled": "number_of_times_throttled",
    "throttled_time": "time_throttled_nanos",
}


class CgroupFormatError(ValueError):
    """A cgroup file exists but its contents are not what we expect.
    cgroup 文件存在，但其内容不符合预期。"""


# ======================================================================
# Membership / 成员关系
# ======================================================================

def parse_membership_line(line: str) -> Optional[tuple[list[str], str]]:
    """
    Split one /proc/self/cgroup line into (subsystems, path).
    把 /proc/self/cgroup 的一行拆分为 (子系统列表, 路径)。

    Returns None if the line is malformed. The path may itself contain
    colons, so only the first two are treated as separators.
    行格式错误时返回 None。路径本身可能含冒号，因此只把前两个冒号视为分隔符。
    """
    fields = line.strip().split(":", 2)
    if len(fields) != 3:
        return None
    hierarchy_id, subsystem_field, path = fields
    if not hierarchy_id.isdigit():
        return None
    if not path.startswith("/"):
        return None
    subsystems = subsystem_field.split(",")
    if any(not s for s in subsystems):
        return None
    return subsystems, path


def parse_membership(lines: Iterable[str]) -> dict[str, str]:
    """
    Build the subsystem → control group map from membership lines.
    根据成员关系行构建 子系统 → 控制组 的映射。

    Pure function: identical input gives an identical map. Blank lines
    are ignored, malformed lines are skipped, and if a subsystem is
    listed twice the later line wins.
    纯函数：相同输入得到相同映射。空行忽略，格式错误的行跳过，
    同一子系统出现两次时以后出现的行为准。
    """
    groups: dict[str, str] = {}
    for line in lines:
        if not line.strip():
            continue
        parsed = parse_membership_line(line)
        if parsed is None:
            logger.debug("skipping malformed control group line [%s]", line.rstrip("\n"))
            continue
        subsystems, path = parsed
        for subsystem in subsystems:
            groups[subsystem] = path
    return groups


class CgroupMembershipResolver:
    """
    Reads the control groups this process belongs to.
    读取本进程所属的控制组。

    The result is never cached: a running process can be moved to
    another group at any time.
    结果从不缓存：运行中的进程随时可能被移到其他控制组。
    """

    def __init__(self, proc_root: str = "/proc"):
        self._path = os.path.join(proc_root, "self", "cgroup")

    def resolve(self) -> dict[str, str]:
        """
        Raises / 抛出
        ------
        OSError
            If the membership file cannot be read. / 无法读取成员关系文件时。
        """
        return parse_membership(self.read_lines())

    def read_lines(self) -> list[str]:
        with open(self._path, "r", encoding="utf-8") as f:
            return f.read().splitlines()

    @property
    def path(self) -> str:
        return self._path


# ======================================================================
# CPU accounting / CPU 记账
# ======================================================================

def parse_single_integer(text: str, source: str = "") -> int:
    """
    Parse a file that holds exactly one line with one integer.
    解析恰好只有一行且只含一个整数的文件。
    """
    lines = [l for l in text.splitlines() if l.strip()]
    if len(lines) != 1:
        raise CgroupFormatError(f"{source}: expected one line, got {len(lines)}")
    try:
        return int(lines[0].strip())
    except ValueError:
        raise CgroupFormatError(f"{source}: not an integer [{lines[0].strip()}]") from None


def parse_cpu_stat(lines: Iterable[str], source: str = "") -> CpuStat:
    """
    Parse ``cpu.stat`` lines in any order.
    按任意顺序解析 ``cpu.stat`` 的行。

    Unknown keys are ignored; an expected key that never appears leaves
    its field as None.
    未知键被忽略；未出现的预期键对应字段保持为 None。

    Raises / 抛出
    ------
    CgroupFormatError
        If an expected key carries a value that is not an integer.
        如果预期键的值不是整数。
    """
    values: dict[str, int] = {}
    for line in lines:
        fields = line.split()
        if not fields or fields[0] not in _CPU_STAT_KEYS:
            continue
        key = fields[0]
        if len(fields) != 2:
            raise CgroupFormatError(f"{source}: malformed line [{line.strip()}]")
        try:
            values[_CPU_STAT_KEYS[key]] = int(fields[1])
        except ValueError:
            raise CgroupFormatError(f"{source}: bad value for {key} [{fields[1]}]") from None
    return CpuStat(**values)


class CgroupCpuAccountant:
    """
    Reads CPU counters for a pair of control groups.
    读取一对控制组的 CPU 计数器。

    Parameters / 参数
    ----------
    cpu_root : str
        Mount point of the "cpu" hierarchy. / "cpu" 层级的挂载点。
    cpuacct_root : str
        Mount point of the "cpuacct" hierarchy. / "cpuacct" 层级的挂载点。

    Every method raises OSError if the file cannot be read and
    CgroupFormatError if its contents cannot be parsed.
    每个方法在文件无法读取时抛出 OSError，内容无法解析时抛出 CgroupFormatError。
    """

    def __init__(self, cpu_root: str = DEFAULT_CPU_ROOT, cpuacct_root: str = DEFAULT_CPUACCT_ROOT):
        self._cpu_root = cpu_root
        self._cpuacct_root = cpuacct_root

    def accounting(self, groups: dict[str, str]) -> Cgroup:
        """
        Read all counters for the "cpu" and "cpuacct" groups in ``groups``.
        读取 ``groups`` 中 "cpu" 与 "cpuacct" 控制组的全部计数器。
        """
        cpu_group = groups.get(CPU_SUBSYSTEM)
        cpuacct_group = groups.get(CPUACCT_SUBSYSTEM)
        if cpu_group is None or cpuacct_group is None:
            missing = [s for s in (CPU_SUBSYSTEM, CPUACCT_SUBSYSTEM) if s not in groups]
            raise CgroupFormatError(f"no control group for subsystem(s) {', '.join(missing)}")
        return Cgroup(
            cpu_acct_control_group=cpuacct_group,
            cpu_acct_usage_nanos=self.cpu_acct_usage_nanos(cpuacct_group),
            cpu_control_group=cpu_group,
            cpu_cfs_period_micros=self.cpu_cfs_period_micros(cpu_group),
            cpu_cfs_quota_micros=self.cpu_cfs_quota_micros(cpu_group),
            cpu_stat=self.cpu_stat(cpu_group),
        )

    def cpu_acct_usage_nanos(self, group: str) -> int:
        """Total CPU time consumed by the group, in ns. / 控制组消耗的总 CPU 时间（纳秒）。"""
        return self._read_integer(self._cpuacct_root, group, "cpuacct.usage")

    def cpu_cfs_period_micros(self, group: str) -> int:
        """CFS enforcement period, in µs. / CFS 配额周期（微秒）。"""
        return self._read_integer(self._cpu_root, group, "cpu.cfs_period_us")

    def cpu_cfs_quota_micros(self, group: str) -> int:
        """CPU time allowed per period, in µs; -1 means unlimited. / 每周期允许的 CPU 时间（微秒）；-1 表示不限。"""
        return self._read_integer(self._cpu_root, group, "cpu.cfs_quota_us")

    def cpu_stat(self, group: str) -> CpuStat:
        path = self.file_path(self._cpu_root, group, "cpu.stat")
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
        return parse_cpu_stat(lines, source=path)

    @staticmethod
    def file_path(root: str, group: str, name: str) -> str:
        """
        Locate ``name`` for ``group`` beneath ``root``.
        在 ``root`` 下定位 ``group`` 的 ``name`` 文件。

        The group path is absolute ("/docker/abc"), so its leading slash
        is stripped before joining; "/" is the root itself.
        控制组路径是绝对路径，拼接前去掉开头的斜杠；"/" 即根目录本身。
        """
        relative = group.lstrip("/")
        if relative:
            return os.path.join(root, relative, name)
        return os.path.join(root, name)

    def _read_integer(self, root: str, group: str, name: str) -> int:
        path = self.file_path(root, group, name)
        with open(path, "r", encoding="utf-8") as f:
            return parse_single_integer(f.read(), source=path)
