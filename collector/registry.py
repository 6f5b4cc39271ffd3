# -*- coding: utf-8 -*-
"""
指标注册表模块

功能：
- 维护 metric 名称 -> Gauge 的映射
- 首次观测到某个配额名称时创建并注册 Gauge（只增不删）
- 提供 Prometheus text format 输出供 /metrics 端点使用
"""

import threading
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry, Gauge, generate_latest

logger = logging.getLogger(__name__)


class MetricRegistry:
    """
    配额指标注册表

    职责：
    1. 懒创建 Gauge（同名只创建一次）
    2. 更新 Gauge 值
    3. 不提供删除操作，Gauge 在进程生命周期内一直存在

    写入方只有 QuotaPublisher（scheduler 线程），读取方是 /metrics 端点（HTTP 线程）。
    创建过程持锁，避免抓取时读到注册到一半的状态。
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        初始化注册表

        Args:
            registry: prometheus_client 的 CollectorRegistry，默认新建一个独立的实例
        """
        self.registry = registry if registry is not None else CollectorRegistry(auto_describe=True)
        self._gauges: Dict[str, Gauge] = {}
        self._labelnames: Dict[str, Tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def ensure_gauge(self, name: str, labelnames: Sequence[str], documentation: str) -> Gauge:
        """
        获取或创建 Gauge

        Args:
            name: 指标名称
            labelnames: label 名称列表
            documentation: 帮助文本（HELP）

        Returns:
            已注册的 Gauge

        Raises:
            ValueError: 同名 Gauge 已存在但 label 集合不同
        """
        labelnames = tuple(labelnames)
        with self._lock:
            gauge = self._gauges.get(name)
            if gauge is None:
                gauge = Gauge(name, documentation, labelnames, registry=self.registry)
                self._gauges[name] = gauge
                self._labelnames[name] = labelnames
                logger.debug(f"注册新 Gauge: {name} labels={labelnames}")
            elif self._labelnames[name] != labelnames:
                raise ValueError(
                    f"Gauge {name} 已使用 labels {self._labelnames[name]} 注册，无法使用 {labelnames}"
                )
            return gauge

    def set_value(self, gauge: Gauge, label_values: Iterable[str], value: float):
        """
        设置 Gauge 在指定 label 组合下的值（覆盖写入）

        Args:
            gauge: ensure_gauge 返回的 Gauge
            label_values: label 值，顺序与 labelnames 一致；无 label 时传空序列
            value: 数值
        """
        label_values = tuple(label_values)
        if label_values:
            gauge.labels(*label_values).set(value)
        else:
            gauge.set(value)

    def get(self, name: str) -> Optional[Gauge]:
        """按名称获取 Gauge，不存在返回 None"""
        with self._lock:
            return self._gauges.get(name)

    def names(self) -> List[str]:
        """已注册的 Gauge 名称（按注册顺序）"""
        with self._lock:
            return list(self._gauges)

    def get_sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """读取当前样本值（主要用于 /health 和测试）"""
        return self.registry.get_sample_value(name, labels or {})

    def generate_latest(self) -> bytes:
        """输出 Prometheus text format"""
        return generate_latest(self.registry)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._gauges

    def __len__(self) -> int:
        with self._lock:
            return len(self._gauges)
