# -*- coding: utf-8 -*-
"""
Quota Source 模块

功能：
- 定义 QuotaSource 接口，主流程只依赖接口
- 提供 GCP Compute Engine 实现
"""

from .interfaces import QuotaSource

__all__ = ['QuotaSource']
