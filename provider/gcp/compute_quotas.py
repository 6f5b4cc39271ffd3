# -*- coding: utf-8 -*-
"""
GCP Compute Engine 配额客户端模块

功能：
- 封装 compute v1 的 projects.get / regions.get 调用
- 凭证使用默认凭证链（Application Default Credentials），或指定的 service account key 文件
"""

import logging
from typing import Any, Dict, List, Optional

import google.auth
from googleapiclient import discovery
from googleapiclient.errors import HttpError

from provider.interfaces import QuotaSource

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = 'https://www.googleapis.com/auth/cloud-platform'


class ComputeQuotasClient(QuotaSource):
    """
    Compute Engine 配额客户端

    功能：
    - get_project_quotas: projects.get(project) 的 quotas 字段
    - get_region_quotas: regions.get(project, region) 的 quotas 字段
    - 不重试，错误原样抛出
    """

    def __init__(self, credentials_file: Optional[str] = None, service: Any = None):
        """
        初始化 Compute 客户端

        Args:
            credentials_file: 凭证文件路径（service account key 等）（可选，不提供则使用默认凭证链）
            service: 已构建的 compute 服务对象（可选，主要用于测试）

        Raises:
            google.auth.exceptions.DefaultCredentialsError: 找不到默认凭证，或凭证文件无效
        """
        if service is not None:
            self.service = service
            return

        if credentials_file:
            credentials, _ = google.auth.load_credentials_from_file(
                credentials_file, scopes=[CLOUD_PLATFORM_SCOPE]
            )
            logger.debug(f"Compute 客户端使用指定凭证文件: {credentials_file}")
        else:
            credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
            logger.debug("Compute 客户端使用默认凭证链")

        self.service = discovery.build('compute', 'v1', credentials=credentials, cache_discovery=False)
        logger.info("Compute 客户端初始化成功")

    def get_project_quotas(self, project: str) -> List[Dict[str, Any]]:
        try:
            response = self.service.projects().get(project=project, fields='quotas').execute()
        except HttpError as e:
            logger.error(f"获取项目配额失败: project={project}, status={e.resp.status}")
            raise
        return self._normalize(response.get('quotas', []))

    def get_region_quotas(self, project: str, region: str) -> List[Dict[str, Any]]:
        try:
            response = self.service.regions().get(project=project, region=region, fields='quotas').execute()
        except HttpError as e:
            logger.error(f"获取区域配额失败: project={project}, region={region}, status={e.resp.status}")
            raise
        return self._normalize(response.get('quotas', []))

    @staticmethod
    def _normalize(quotas: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        # API 对未使用的配额可能省略 usage 字段
        return [
            {
                'metric': quota['metric'],
                'limit': float(quota.get('limit', 0.0)),
                'usage': float(quota.get('usage', 0.0)),
            }
            for quota in quotas
        ]
