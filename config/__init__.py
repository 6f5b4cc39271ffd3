# -*- coding: utf-8 -*-
"""
配置模块

功能：
- 加载 Exporter 配置（YAML 文件 / 环境变量 / 命令行参数）
- 验证配置
"""

from config.loader import ExporterConfig, load_exporter_config, parse_listen_address, split_csv

__all__ = ['ExporterConfig', 'load_exporter_config', 'parse_listen_address', 'split_csv']
