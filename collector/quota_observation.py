# -*- coding: utf-8 -*-
"""
配额观测数据结构

功能：
- 定义单次采集得到的配额观测（metric, limit, usage）
- 区分全局配额（project 级）和区域配额（project + region）
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum


class QuotaScope(Enum):
    """配额作用域"""
    GLOBAL = "global"        # project 级配额
    REGIONAL = "regional"    # project + region 级配额


@dataclass(frozen=True)
class QuotaObservation:
    """单条配额观测（每个采集周期生成，不持久化）"""
    metric: str                     # 上游配额名称，如 "CPUS"
    limit: float                    # 配额上限
    usage: float                    # 当前使用量
    project: str                    # 项目 ID
    region: Optional[str] = None    # 区域，None 表示全局配额

    @property
    def scope(self) -> QuotaScope:
        """根据 region 推导作用域"""
        if self.region is None:
            return QuotaScope.GLOBAL
        return QuotaScope.REGIONAL

    def is_global(self) -> bool:
        """判断是否全局配额"""
        return self.scope == QuotaScope.GLOBAL

    @classmethod
    def from_quota(cls, quota: Dict[str, Any], project: str, region: Optional[str] = None) -> "QuotaObservation":
        """
        从 Compute API 返回的配额记录构造观测

        Args:
            quota: 配额记录，形如 {'metric': 'CPUS', 'limit': 72.0, 'usage': 4.0}
            project: 项目 ID
            region: 区域（全局配额为 None）

        Raises:
            KeyError: 缺少 metric 字段
        """
        return cls(
            metric=quota['metric'],
            limit=float(quota.get('limit', 0.0)),
            usage=float(quota.get('usage', 0.0)),
            project=project,
            region=region
        )
