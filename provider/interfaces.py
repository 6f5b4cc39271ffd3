# -*- coding: utf-8 -*-
"""
Quota Source 接口定义

功能：
- 定义获取全局配额和区域配额的接口
- 主流程只依赖接口，不关心具体实现（GCP 客户端、测试桩等）
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class QuotaSource(ABC):
    """
    配额数据源接口

    返回的每条配额记录是字典：{'metric': str, 'limit': float, 'usage': float}
    失败时直接抛出异常，由调用方决定如何处理。
    """

    @abstractmethod
    def get_project_quotas(self, project: str) -> List[Dict[str, Any]]:
        """
        获取项目级（全局）配额

        Args:
            project: 项目 ID

        Returns:
            配额记录列表
        """
        pass

    @abstractmethod
    def get_region_quotas(self, project: str, region: str) -> List[Dict[str, Any]]:
        """
        获取项目在某个区域的配额

        Args:
            project: 项目 ID
            region: 区域，如 "europe-west1"

        Returns:
            配额记录列表
        """
        pass
