# -*- coding: utf-8 -*-
"""
配额拉取模块

功能：
- 按配置顺序拉取每个 project 的全局配额，以及每个 project × region 的区域配额
- 任一调用失败立即抛出 QuotaFetchError，不做部分结果容忍，不重试
"""

import logging
from typing import List, Optional, Sequence

from collector.quota_observation import QuotaObservation
from provider.interfaces import QuotaSource

logger = logging.getLogger(__name__)


class QuotaFetchError(Exception):
    """拉取某个 project / region 的配额失败（致命错误）"""

    def __init__(self, project: str, region: Optional[str], cause: BaseException):
        self.project = project
        self.region = region
        self.cause = cause
        if region is None:
            message = f"Retrieving project detail for project {project} failed: {cause}"
        else:
            message = f"Retrieving region detail for project {project} and region {region} failed: {cause}"
        super().__init__(message)


class QuotaFetcher:
    """
    配额拉取器

    职责：
    1. 顺序调用 QuotaSource（不并发，保持 API 调用模式可预期）
    2. 把原始配额记录转换为 QuotaObservation
    3. 不操作 Prometheus metrics
    """

    def __init__(self, source: QuotaSource):
        self.source = source

    def fetch(self, projects: Sequence[str], regions: Sequence[str]) -> List[QuotaObservation]:
        """
        拉取所有配置的作用域

        Args:
            projects: 项目 ID 列表（有序）
            regions: 区域列表（有序，可为空，为空时只拉取全局配额）

        Returns:
            扁平、有序的 QuotaObservation 列表：
            project1 全局, project1/region1, project1/region2, project2 全局, ...

        Raises:
            QuotaFetchError: 任一 project 或 region 拉取失败
        """
        logger.info("Fetching gcloud quota...")
        observations: List[QuotaObservation] = []

        for project in projects:
            quotas = self._call(project, None)
            observations.extend(QuotaObservation.from_quota(q, project) for q in quotas)
            logger.info(f"项目 {project} 全局配额: {len(quotas)} 条")

            for region in regions:
                quotas = self._call(project, region)
                observations.extend(QuotaObservation.from_quota(q, project, region) for q in quotas)
                logger.info(f"项目 {project} 区域 {region} 配额: {len(quotas)} 条")

        return observations

    def _call(self, project: str, region: Optional[str]) -> list:
        try:
            if region is None:
                return self.source.get_project_quotas(project)
            return self.source.get_region_quotas(project, region)
        except Exception as e:
            raise QuotaFetchError(project, region, e) from e
