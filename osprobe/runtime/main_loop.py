"""
ProbeLoop — periodic host sampling wired together from the config.
探针循环 —— 根据配置串联起来的周期性主机采样。

Each tick / 每个心跳:

    ①  Clock.tick()             开始一次采样 / start a sample
    ②  OsProbe.sample()         采集主机快照 / take the host snapshot
    ③  SnapshotLog.append()     记录快照     / record it (if enabled)
    ④  Clock.wait_until_next_tick()  等待下一次 / pace to the refresh interval

Usage / 用法:
    python -m osprobe.runtime.main_loop --config configs/probe.yaml
"""

import logging
import signal
import time
from typing import Optional

from osprobe.core.clock import Clock
from osprobe.environment.os_probe import OsProbe
from osprobe.environment.os_stats import OsInfo, OsStats
from osprobe.observation.snapshot_log import SnapshotLog
from osprobe.runtime.config import Config, parse_args
from osprobe.runtime.log_config import setup_logger

logger = logging.getLogger(__name__)

_MAX_ERRORS = 100


class ProbeLoop:
    """
    Samples the host at a fixed interval until stopped.
    以固定间隔采样主机，直到被停止。

    Parameters / 参数
    ----------
    config : Config
        Loaded configuration. / 已加载的配置。
    max_samples_override : int, optional
        Override probe.max_samples (useful for testing).
        覆盖 probe.max_samples（用于测试）。
    probe : OsProbe, optional
        Pre-built probe; by default one is built from the config paths.
        预先构建的探针；默认根据配置中的路径构建。
    """

    def __init__(
        self,
        config: Config,
        max_samples_override: Optional[int] = None,
        probe: Optional[OsProbe] = None,
    ):
        self._config = config
        self._running = True

        max_samples = config.max_samples if max_samples_override is None else max_samples_override
        self._clock = Clock(tick_interval_ms=config.refresh_interval_ms, max_ticks=max_samples)

        self._probe = probe if probe is not None else OsProbe(
            proc_root=config.proc_root,
            cgroup_cpu_root=config.cgroup_cpu_root,
            cgroup_cpuacct_root=config.cgroup_cpuacct_root,
        )

        self._log: Optional[SnapshotLog] = None
        if config.output_enabled:
            self._log = SnapshotLog(log_dir=config.output_dir, rotation_mb=config.rotation_mb)

        self._last_sample: Optional[OsStats] = None
        self._cgroup_samples: int = 0

    # ==================================================================
    # Public API / 公共接口
    # ==================================================================

    def static_info(self) -> OsInfo:
        return self._probe.static_info(self._config.refresh_interval_ms, self._config.allocated_processors)

    def run(self) -> dict:
        """
        Start sampling. Runs until max_samples or interrupted.
        开始采样。运行到 max_samples 或被中断。

        Returns / 返回
        -------
        dict
            Summary statistics of the run. / 运行的汇总统计。
        """
        info = self.static_info()
        print(f"[osprobe] Starting {self._config.system_name} v{self._config.system_version}")
        print(f"[osprobe] Host: {info.name} {info.version} ({info.arch}), "
              f"{info.available_processors} processors, {info.allocated_processors} allocated")
        print(f"[osprobe] Platform family: {self._probe.platform.value} | "
              f"Capabilities: {', '.join(sorted(c.name for c in self._probe.capabilities)) or 'none'}")
        print(f"[osprobe] Refresh interval: {self._config.refresh_interval_ms}ms")
        print()

        previous = {
            signal.SIGINT: signal.signal(signal.SIGINT, self._handle_signal),
            signal.SIGTERM: signal.signal(signal.SIGTERM, self._handle_signal),
        }

        start_time = time.time()
        samples_taken = 0
        errors = 0
        try:
            while self._running and self._clock.has_remaining:
                try:
                    self._tick()
                    samples_taken += 1
                except Exception:
                    errors += 1
                    logger.exception("sample %d failed", self._clock.current_tick)
                    if errors > _MAX_ERRORS:
                        print(f"[osprobe] Too many errors ({errors}), stopping.")
                        break
                self._clock.wait_until_next_tick()
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)
            elapsed = time.time() - start_time
            summary = {
                "samples_taken": samples_taken,
                "elapsed_seconds": round(elapsed, 2),
                "errors": errors,
                "avg_sample_rate_hz": round(samples_taken / elapsed, 2) if elapsed > 0 else 0,
                "cgroup_samples": self._cgroup_samples,
                "records_written": self._log.record_count if self._log is not None else 0,
            }

        print()
        print("[osprobe] === Run Summary / 运行总结 ===")
        for k, v in summary.items():
            print(f"  {k}: {v}")
        return summary

    def stop(self) -> None:
        self._running = False

    # ==================================================================
    # One tick / 单次心跳
    # ==================================================================

    def _tick(self) -> None:
        tick = self._clock.tick()
        stats = self._probe.sample()
        self._last_sample = stats
        if stats.cgroup is not None:
            self._cgroup_samples += 1
        if self._log is not None:
            self._log.append(stats)
        logger.debug(
            "sample %d: cpu=%s%% load=%s mem_free=%s cgroup=%s",
            tick,
            stats.cpu.percent,
            stats.cpu.load_average.as_tuple() if stats.cpu.load_average else None,
            stats.mem.free,
            "yes" if stats.cgroup is not None else "no",
        )

    def _handle_signal(self, signum, frame) -> None:
        """Handle SIGINT/SIGTERM for graceful shutdown. / 处理 SIGINT/SIGTERM 以优雅退出。"""
        print(f"\n[osprobe] Received signal {signum}, shutting down...")
        self._running = False

    # ==================================================================
    # Properties for testing / 测试用属性
    # ==================================================================

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def probe(self) -> OsProbe:
        return self._probe

    @property
    def log(self) -> Optional[SnapshotLog]:
        return self._log

    @property
    def last_sample(self) -> Optional[OsStats]:
        return self._last_sample

    @property
    def is_running(self) -> bool:
        return self._running


# ==================================================================
# Entry point / 入口点
# ==================================================================

def main(argv: Optional[list[str]] = None) -> dict:
    """
    Main entry point: parse args, load config, run the loop.
    主入口点：解析参数，加载配置，运行循环。
    """
    args = parse_args(argv)
    config = Config(args.config)
    level_name = args.log_level or config.log_level
    setup_logger("osprobe", level=getattr(logging, level_name, logging.INFO), log_file=config.log_file)

    loop = ProbeLoop(config, max_samples_override=args.max_samples)
    if args.info:
        info = loop.static_info().to_dict()
        for k, v in info.items():
            print(f"  {k}: {v}")
        return info
    return loop.run()


if __name__ == "__main__":
    main()
