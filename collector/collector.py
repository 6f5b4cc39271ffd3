# -*- coding: utf-8 -*-
"""
配额采集周期模块

功能：
- 串联 QuotaFetcher 和 QuotaPublisher，完成一次"拉取 -> 发布"
- 供 main 的首次采集和 Scheduler 的定时采集调用
"""

import time
import logging
from typing import List, Sequence

from collector.fetcher import QuotaFetcher
from collector.publisher import QuotaPublisher

logger = logging.getLogger(__name__)


class QuotaCollector:
    """
    配额采集器

    一次 collect() 调用即一个完整周期：先拉取所有作用域，全部成功后再发布。
    拉取失败时 QuotaFetchError 原样抛出，本周期不发布任何数据。
    """

    def __init__(self, fetcher: QuotaFetcher, publisher: QuotaPublisher,
                 projects: Sequence[str], regions: Sequence[str]):
        self.fetcher = fetcher
        self.publisher = publisher
        self.projects: List[str] = list(projects)
        self.regions: List[str] = list(regions)
        self.cycles = 0

    def collect(self) -> int:
        """
        执行一次采集周期

        Returns:
            发布的观测条数

        Raises:
            QuotaFetchError: 拉取失败
        """
        started_at = time.monotonic()
        observations = self.fetcher.fetch(self.projects, self.regions)
        count = self.publisher.publish(observations)
        self.publisher.observe_duration(started_at)
        self.cycles += 1
        logger.debug(f"第 {self.cycles} 个采集周期完成，耗时 {time.monotonic() - started_at:.2f} 秒")
        return count
