"""
Clock — fixed-cadence driver for the sampling loop.
时钟 —— 采样循环的固定节奏驱动器。

The probe itself takes one sample per call and keeps no schedule; the
runtime loop calls tick() before each sample and wait_until_next_tick()
after it, so samples land on a steady refresh interval regardless of
how long an individual read took.

探针本身每次调用只采一次样，不维护任何调度；运行时循环在每次采样前
调用 tick()，采样后调用 wait_until_next_tick()，这样无论单次读取耗时多少，
采样都能落在稳定的刷新间隔上。
"""

import time


class Clock:
    """
    Counts samples and paces them at a fixed interval.
    统计采样次数并以固定间隔控制节奏。

    Parameters / 参数
    ----------
    tick_interval_ms : int
        Milliseconds between samples (default 1000).
        两次采样之间的毫秒数（默认 1000）。
    max_ticks : int
        Stop after this many samples; 0 means never stop.
        达到该采样次数后停止；0 表示永不停止。
    """

    def __init__(self, tick_interval_ms: int = 1000, max_ticks: int = 0):
        if tick_interval_ms < 0:
            raise ValueError("tick_interval_ms must be >= 0")
        if max_ticks < 0:
            raise ValueError("max_ticks must be >= 0")
        self._interval_s = tick_interval_ms / 1000.0
        self._max_ticks = max_ticks
        self._current_tick: int = 0
        self._start_time: float = time.monotonic()
        self._last_tick_time: float = self._start_time

    def tick(self) -> int:
        """Start a new sample; returns its 1-based number. / 开始新一次采样，返回其编号（从 1 开始）。"""
        self._current_tick += 1
        self._last_tick_time = time.monotonic()
        return self._current_tick

    def wait_until_next_tick(self) -> None:
        """
        Sleep for whatever is left of the current interval.
        休眠到当前间隔结束为止。

        A sample that overran its interval does not sleep at all.
        超出间隔的采样不会再休眠。
        """
        remaining = self._last_tick_time + self._interval_s - time.monotonic()
        if remaining > 0:
            time.sleep(remaining)

    @property
    def current_tick(self) -> int:
        return self._current_tick

    @property
    def max_ticks(self) -> int:
        return self._max_ticks

    @property
    def has_remaining(self) -> bool:
        """True while the loop should keep sampling. / 循环应继续采样时为 True。"""
        return self._max_ticks == 0 or self._current_tick < self._max_ticks

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def elapsed_s(self) -> float:
        """Seconds since the clock was created. / 自时钟创建以来的秒数。"""
        return time.monotonic() - self._start_time
