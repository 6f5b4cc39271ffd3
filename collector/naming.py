# -*- coding: utf-8 -*-
"""
指标命名模块

功能：
- 将上游配额名称规范化为小写下划线（snake_case）
- 按作用域（global / regional）和类型（limit / usage）生成唯一的 gauge 名称
"""

import re
from dataclasses import dataclass
from typing import Tuple

from collector.quota_observation import QuotaObservation, QuotaScope

DEFAULT_NAMESPACE = 'gcloud_quota'

GLOBAL_LABELS: Tuple[str, ...] = ('project',)
REGIONAL_LABELS: Tuple[str, ...] = ('project', 'region')

KIND_LIMIT = 'limit'
KIND_USAGE = 'usage'

_ACRONYM_BOUNDARY = re.compile(r'([A-Z]+)([A-Z][a-z])')
_CAMEL_BOUNDARY = re.compile(r'([a-z0-9])([A-Z])')
_INVALID_CHARS = re.compile(r'[^a-z0-9]+')


def to_snake_case(name: str) -> str:
    """
    规范化配额名称

    例如：
    - "CPUS" -> "cpus"
    - "IN_USE_ADDRESSES" -> "in_use_addresses"
    - "nvidiaK80Gpus" -> "nvidia_k80_gpus"
    - "SSD total-GB" -> "ssd_total_gb"
    - "N2D_CPUS" -> "n2d_cpus"（全大写名称不按驼峰拆分）

    对结果再次调用返回相同值（幂等）。
    """
    if name != name.upper():
        # 只有包含小写字母的名称才按驼峰边界拆分
        name = _ACRONYM_BOUNDARY.sub(r'\1_\2', name)
        name = _CAMEL_BOUNDARY.sub(r'\1_\2', name)
    return _INVALID_CHARS.sub('_', name.lower()).strip('_')


@dataclass(frozen=True)
class MetricKey:
    """gauge 的唯一键：名称 + label 集合"""
    name: str
    labelnames: Tuple[str, ...]
    documentation: str


def build_metric_key(observation: QuotaObservation, kind: str, namespace: str = DEFAULT_NAMESPACE) -> MetricKey:
    """
    为观测生成 limit 或 usage 的 MetricKey

    全局配额：<namespace>_global_<name>_<kind>，labels: project
    区域配额：<namespace>_<name>_<kind>，labels: project, region
    """
    prefix = namespace + '_'
    labelnames = REGIONAL_LABELS
    if observation.scope == QuotaScope.GLOBAL:
        prefix += 'global_'
        labelnames = GLOBAL_LABELS

    quota_name = to_snake_case(observation.metric)
    return MetricKey(
        name=f"{prefix}{quota_name}_{kind}",
        labelnames=labelnames,
        documentation=f"The {kind} for quota {observation.metric}."
    )


def label_values(observation: QuotaObservation) -> Tuple[str, ...]:
    """返回观测对应的 label 值（与 MetricKey.labelnames 顺序一致）"""
    if observation.is_global():
        return (observation.project,)
    return (observation.project, observation.region)
