# -*- coding: utf-8 -*-
"""
配额采集模块

功能：
- 拉取 Compute Engine 配额（QuotaFetcher）
- 将配额写入 Prometheus Gauge（QuotaPublisher / MetricRegistry）
- 串联一次完整的采集周期（QuotaCollector）
"""

from .quota_observation import QuotaObservation, QuotaScope
from .registry import MetricRegistry
from .fetcher import QuotaFetcher, QuotaFetchError
from .publisher import QuotaPublisher
from .collector import QuotaCollector

__all__ = [
    'QuotaObservation',
    'QuotaScope',
    'MetricRegistry',
    'QuotaFetcher',
    'QuotaFetchError',
    'QuotaPublisher',
    'QuotaCollector',
]
