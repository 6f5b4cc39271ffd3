# -*- coding: utf-8 -*-
"""
GCP Provider 模块

功能：
- 通过 Compute Engine API 获取项目和区域的配额
"""

from .compute_quotas import ComputeQuotasClient

__all__ = ['ComputeQuotasClient']
