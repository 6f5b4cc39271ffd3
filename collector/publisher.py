# -*- coding: utf-8 -*-
"""
配额发布模块

功能：
- 把 QuotaObservation 写入 MetricRegistry（upsert：不存在则创建 Gauge，存在则覆盖值）
- 维护 exporter 自身指标（最近更新时间、采集耗时、版本信息）
"""

import time
import logging
from typing import Iterable

from prometheus_client import Gauge, Histogram

from collector.naming import DEFAULT_NAMESPACE, KIND_LIMIT, KIND_USAGE, build_metric_key, label_values
from collector.quota_observation import QuotaObservation
from collector.registry import MetricRegistry

logger = logging.getLogger(__name__)


class QuotaPublisher:
    """
    配额发布器

    职责：
    1. 规范化配额名称，生成 limit / usage 两个 MetricKey
    2. 通过 MetricRegistry 懒创建 Gauge
    3. 以覆盖（set）语义写入当前值，不跨周期累加
    """

    def __init__(self, registry: MetricRegistry, namespace: str = DEFAULT_NAMESPACE, version: str = 'dev'):
        """
        初始化发布器

        Args:
            registry: 指标注册表
            namespace: 指标名称前缀
            version: exporter 版本号（写入 build_info）
        """
        self.registry = registry
        self.namespace = namespace

        # Exporter 自身指标
        self.last_update_timestamp = Gauge(
            f'{namespace}_exporter_last_update_timestamp_seconds',
            'Unix time of the last successfully published quota cycle',
            registry=registry.registry
        )
        self.fetch_duration_seconds = Histogram(
            f'{namespace}_exporter_fetch_duration_seconds',
            'Duration of a quota fetch and publish cycle in seconds',
            buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0],
            registry=registry.registry
        )
        self.build_info = Gauge(
            f'{namespace}_exporter_build_info',
            'Build information of the quota exporter',
            ['version'],
            registry=registry.registry
        )
        self.build_info.labels(version=version).set(1)

    def publish_observation(self, observation: QuotaObservation):
        """
        发布单条观测（limit 和 usage 各一个 Gauge）

        Args:
            observation: 配额观测
        """
        values = label_values(observation)
        for kind, value in ((KIND_LIMIT, observation.limit), (KIND_USAGE, observation.usage)):
            key = build_metric_key(observation, kind, self.namespace)
            gauge = self.registry.ensure_gauge(key.name, key.labelnames, key.documentation)
            self.registry.set_value(gauge, values, value)

    def publish(self, observations: Iterable[QuotaObservation]) -> int:
        """
        发布一个周期内的所有观测

        Args:
            observations: QuotaFetcher.fetch 的返回值

        Returns:
            发布的观测条数
        """
        count = 0
        for observation in observations:
            self.publish_observation(observation)
            count += 1

        self.last_update_timestamp.set_to_current_time()
        logger.info(f"发布配额完成: {count} 条观测, 共 {len(self.registry)} 个 Gauge")
        return count

    def observe_duration(self, started_at: float):
        """记录一个采集周期的耗时（started_at 为 time.monotonic() 的返回值）"""
        self.fetch_duration_seconds.observe(time.monotonic() - started_at)
