"""
Config — loads the probe's YAML configuration.
配置读取器 —— 加载探针的 YAML 配置。

Reads a YAML file (e.g. configs/probe.yaml) and provides typed access
with defaults for every setting, plus command-line argument parsing for
the runtime entry point.

读取 YAML 文件（如 configs/probe.yaml），为每项设置提供带默认值的类型化
访问，并为运行时入口解析命令行参数。
"""

import argparse
from typing import Any, Optional

import yaml


class Config:
    """
    Typed wrapper around a YAML configuration file.
    YAML 配置文件的类型化封装。

    Parameters / 参数
    ----------
    config_path : str
        Path to the YAML configuration file. / YAML 配置文件路径。
    """

    def __init__(self, config_path: str):
        self._path = config_path
        with open(config_path, "r", encoding="utf-8") as f:
            self._raw: dict[str, Any] = yaml.safe_load(f) or {}
        if not isinstance(self._raw, dict):
            raise ValueError(f"{config_path}: top level must be a mapping")

    def _get(self, section: str, key: str, default: Any = None) -> Any:
        """Retrieve section.key with a fallback default. / 从 section.key 获取值，带回退默认值。"""
        value = (self._raw.get(section) or {}).get(key, default)
        return default if value is None else value

    # ------------------------------------------------------------------
    # System / 系统
    # ------------------------------------------------------------------

    @property
    def system_name(self) -> str:
        return self._get("system", "name", "osprobe")

    @property
    def system_version(self) -> str:
        return self._get("system", "version", "0.1.0")

    # ------------------------------------------------------------------
    # Probe / 探针
    # ------------------------------------------------------------------

    @property
    def refresh_interval_ms(self) -> int:
        return int(self._get("probe", "refresh_interval_ms", 1000))

    @property
    def max_samples(self) -> int:
        """0 = sample until signalled. / 0 = 一直采样直到收到信号。"""
        return int(self._get("probe", "max_samples", 0))

    @property
    def allocated_processors(self) -> Optional[int]:
        value = self._get("probe", "allocated_processors")
        return int(value) if value is not None else None

    # ------------------------------------------------------------------
    # Paths / 路径
    # ------------------------------------------------------------------

    @property
    def proc_root(self) -> str:
        return self._get("paths", "proc_root", "/proc")

    @property
    def cgroup_cpu_root(self) -> str:
        return self._get("paths", "cgroup_cpu_root", "/sys/fs/cgroup/cpu")

    @property
    def cgroup_cpuacct_root(self) -> str:
        return self._get("paths", "cgroup_cpuacct_root", "/sys/fs/cgroup/cpuacct")

    # ------------------------------------------------------------------
    # Logging / 日志
    # ------------------------------------------------------------------

    @property
    def log_level(self) -> str:
        return str(self._get("logging", "level", "INFO")).upper()

    @property
    def log_file(self) -> Optional[str]:
        return self._get("logging", "file")

    # ------------------------------------------------------------------
    # Output / 输出
    # ------------------------------------------------------------------

    @property
    def output_enabled(self) -> bool:
        return bool(self._get("output", "enabled", True))

    @property
    def output_dir(self) -> str:
        return self._get("output", "dir", "data/samples")

    @property
    def rotation_mb(self) -> float:
        return float(self._get("output", "rotation_mb", 10.0))

    # ------------------------------------------------------------------
    # Raw access / 原始访问
    # ------------------------------------------------------------------

    @property
    def raw(self) -> dict:
        return dict(self._raw)

    @property
    def path(self) -> str:
        return self._path


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments for the probe runtime.
    解析探针运行时的命令行参数。

    Usage / 用法:
        python -m osprobe.runtime.main_loop --config configs/probe.yaml
        python -m osprobe.runtime.main_loop --config configs/probe.yaml --info
    """
    parser = argparse.ArgumentParser(
        description="osprobe host metrics sampler / osprobe 主机指标采样器",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="configs/probe.yaml",
        help="Path to YAML config file (default: configs/probe.yaml) / YAML 配置文件路径",
    )
    parser.add_argument(
        "--max-samples",
        type=int,
        default=None,
        help="Override probe.max_samples from config / 覆盖配置中的 max_samples",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        default=False,
        help="Print static host info and exit / 打印静态主机信息后退出",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override logging.level from config / 覆盖配置中的日志级别",
    )
    return parser.parse_args(argv)
