# -*- coding: utf-8 -*-
"""
定时任务实现模块

功能：
- 定时调用采集函数刷新数据（间隔带 ±25% 随机抖动）
- 不直接操作 Prometheus metrics
- 不关心 project、region 细节
- 只负责"什么时候刷新"和"什么时候停止"
"""

import random
import threading
import logging
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)

JITTER_RATIO = 0.25


class SchedulerState(Enum):
    """调度器状态"""
    IDLE = "idle"
    FETCHING = "fetching"
    SLEEPING = "sleeping"
    CANCELLED = "cancelled"


def apply_jitter(base: float, rng: Optional[random.Random] = None) -> float:
    """
    计算带抖动的等待时间

    结果均匀分布在 [0.75 * base, 1.25 * base) 区间内。

    deviation 取连续值 0.25 * base，随机量取 [0, 2 * deviation) 的浮点数；
    不按整数 round(0.25 * base) 取整，否则 base 不能被 4 整除时（如 30）
    会超出上述区间。

    Args:
        base: 基础间隔（秒）
        rng: 随机数生成器（可选，测试时可传入固定种子的实例）

    Returns:
        等待秒数
    """
    rng = rng or random
    deviation = JITTER_RATIO * base
    return base - deviation + rng.random() * 2 * deviation


class QuotaScheduler:
    """
    配额采集定时任务调度器

    状态流转：IDLE -> FETCHING -> SLEEPING -> FETCHING -> ... -> CANCELLED

    职责：
    1. 在后台线程中循环：等待（带抖动）-> 检查是否已取消 -> 调用采集函数
    2. stop() 只设置取消标志，不打断正在执行的采集
    3. 采集函数抛出异常时视为致命错误，调用 on_fatal 回调后退出循环（不重试）
    """

    def __init__(
        self,
        collect_func: Callable[[], object],
        interval: int = 60,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
        rng: Optional[random.Random] = None
    ):
        """
        初始化定时任务调度器

        Args:
            collect_func: 采集函数（一次完整的拉取 + 发布）
            interval: 基础刷新间隔（秒），默认 60
            on_fatal: 采集失败时的回调，参数为异常对象
            rng: 随机数生成器（可选）
        """
        if interval <= 0:
            raise ValueError(f"interval 必须是正数: {interval}")

        self.collect_func = collect_func
        self.interval = interval
        self.on_fatal = on_fatal
        self._rng = rng or random.Random()

        self._state = SchedulerState.IDLE
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_error: Optional[BaseException] = None

        logger.info(f"QuotaScheduler 初始化完成: interval={interval}s (±{int(JITTER_RATIO * 100)}%)")

    @property
    def state(self) -> SchedulerState:
        return self._state

    def run_once(self):
        """
        同步执行一次采集（FETCHING）

        Raises:
            采集函数抛出的任何异常
        """
        self._state = SchedulerState.FETCHING
        logger.info("[Scheduler] refresh triggered")
        try:
            self.collect_func()
        finally:
            self._state = SchedulerState.IDLE
        logger.info("[Scheduler] refresh completed")

    def start(self):
        """
        启动后台采集线程

        首次采集由调用方通过 run_once() 同步完成，因此循环从 SLEEPING 开始。
        """
        if self._thread is not None and self._thread.is_alive():
            logger.warning("定时任务已在运行")
            return

        self._cancelled.clear()
        self._thread = threading.Thread(
            target=self._refresh_loop,
            name="QuotaRefreshThread",
            daemon=True
        )
        self._thread.start()
        logger.info("定时任务调度器已启动")

    def stop(self, timeout: Optional[float] = None):
        """
        停止定时任务

        设置取消标志并等待后台线程退出；正在执行的采集会先完成。

        Args:
            timeout: 等待线程结束的最长时间（秒），None 表示一直等待
        """
        logger.info("停止定时任务调度器...")
        self._cancelled.set()

        if self._thread is not None and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

        if self._thread is None or not self._thread.is_alive():
            self._state = SchedulerState.CANCELLED
        logger.info("定时任务调度器已停止")

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _refresh_loop(self):
        """
        刷新循环

        每次等待 apply_jitter(interval) 秒；等待期间收到 stop() 会立即醒来并退出。
        """
        logger.info(f"[Scheduler] 刷新循环启动，基础间隔: {self.interval} 秒")

        while not self._cancelled.is_set():
            self._state = SchedulerState.SLEEPING
            sleep_time = apply_jitter(self.interval, self._rng)
            logger.info(f"Sleeping for {sleep_time:.1f} seconds...")
            if self._cancelled.wait(sleep_time):
                break

            try:
                self.run_once()
            except Exception as e:
                self.last_error = e
                logger.critical(f"[Scheduler] 采集失败，停止刷新循环: {e}", exc_info=True)
                self._cancelled.set()
                if self.on_fatal is not None:
                    self.on_fatal(e)
                break

        self._state = SchedulerState.CANCELLED
        logger.info("[Scheduler] 刷新循环已退出")

    def get_status(self) -> dict:
        """
        获取定时任务状态

        Returns:
            状态信息字典
        """
        return {
            'state': self._state.value,
            'interval': self.interval,
            'thread_alive': self._thread.is_alive() if self._thread else False,
            'last_error': str(self.last_error) if self.last_error else None
        }
