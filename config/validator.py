# -*- coding: utf-8 -*-
"""
配置验证模块

功能：
- 验证配置的完整性和正确性
- 检查必填字段
- 验证字段格式和取值范围
"""

import re

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

_METRIC_NAMESPACE = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


def validate_config(config):
    """
    验证配置对象

    Args:
        config: ExporterConfig 对象

    Raises:
        ValueError: 配置无效（错误信息说明具体字段）
    """
    # 延迟导入，避免与 loader 循环引用
    from config.loader import parse_listen_address

    if not config.projects:
        raise ValueError("至少需要配置一个项目（--google-compute-project / GCLOUD_PROJECT_NAME）")

    if config.refresh_interval <= 0:
        raise ValueError(f"refresh_interval 必须是正整数: {config.refresh_interval}")

    if not config.metrics_path.startswith('/'):
        raise ValueError(f"metrics_path 必须以 / 开头: {config.metrics_path}")

    _, port = parse_listen_address(config.metrics_listen_address)
    if not 1 <= port <= 65535:
        raise ValueError(f"监听端口超出范围（1-65535）: {port}")

    if not _METRIC_NAMESPACE.match(config.metric_namespace):
        raise ValueError(f"metric_namespace 不是合法的 Prometheus 指标名称前缀: {config.metric_namespace}")

    if config.log_level not in VALID_LOG_LEVELS:
        raise ValueError(f"log_level 必须是以下值之一: {', '.join(VALID_LOG_LEVELS)}")
