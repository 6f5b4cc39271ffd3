# -*- coding: utf-8 -*-
"""测试公共 fixtures"""

from typing import Dict, List, Optional, Tuple

import pytest

from collector import MetricRegistry, QuotaPublisher
from provider.interfaces import QuotaSource


class FakeQuotaSource(QuotaSource):
    """
    内存中的配额数据源

    global_quotas: project -> 配额记录列表
    region_quotas: (project, region) -> 配额记录列表
    failures: 调用这些作用域时抛出 RuntimeError，region 为 None 表示全局
    """

    def __init__(self, global_quotas=None, region_quotas=None, failures=None):
        self.global_quotas: Dict[str, List[dict]] = global_quotas or {}
        self.region_quotas: Dict[Tuple[str, str], List[dict]] = region_quotas or {}
        self.failures = set(failures or [])
        self.calls: List[Tuple[str, Optional[str]]] = []

    def get_project_quotas(self, project):
        self.calls.append((project, None))
        if (project, None) in self.failures:
            raise RuntimeError(f"boom: {project}")
        return list(self.global_quotas.get(project, []))

    def get_region_quotas(self, project, region):
        self.calls.append((project, region))
        if (project, region) in self.failures:
            raise RuntimeError(f"boom: {project}/{region}")
        return list(self.region_quotas.get((project, region), []))


def quota(metric, limit, usage):
    return {'metric': metric, 'limit': limit, 'usage': usage}


@pytest.fixture
def registry():
    return MetricRegistry()


@pytest.fixture
def publisher(registry):
    return QuotaPublisher(registry)
