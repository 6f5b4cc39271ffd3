# -*- coding: utf-8 -*-
"""
Exporter 配置加载模块

功能：
- 定义清晰的配置数据结构（ExporterConfig）
- 按优先级合并配置：默认值 < YAML 配置文件 < 环境变量 < 命令行参数
- 读取失败时给出明确错误
"""

import argparse
import os
import yaml
from dataclasses import dataclass, field, fields
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Any

from config.validator import validate_config


@dataclass
class ExporterConfig:
    """Exporter 配置的根数据结构"""
    metrics_listen_address: str = ':9101'    # HTTP 监听地址，格式 host:port
    metrics_path: str = '/metrics'           # Prometheus 抓取路径
    projects: List[str] = field(default_factory=list)   # 项目 ID 列表
    regions: List[str] = field(default_factory=list)    # 区域列表（可为空）
    credentials_file: Optional[str] = None   # service account key 文件路径
    refresh_interval: int = 60               # 基础刷新间隔（秒）
    metric_namespace: str = 'gcloud_quota'   # 指标名称前缀
    log_level: str = 'INFO'                  # 日志级别

    @property
    def listen_host(self) -> str:
        return parse_listen_address(self.metrics_listen_address)[0]

    @property
    def listen_port(self) -> int:
        return parse_listen_address(self.metrics_listen_address)[1]


# 配置项 -> 环境变量
ENV_VARS: Dict[str, str] = {
    'metrics_listen_address': 'PROMETHEUS_METRICS_PORT',
    'metrics_path': 'PROMETHEUS_METRICS_PATH',
    'projects': 'GCLOUD_PROJECT_NAME',
    'regions': 'GCLOUD_REGIONS',
    'credentials_file': 'GOOGLE_APPLICATION_CREDENTIALS',
    'refresh_interval': 'QUOTA_REFRESH_INTERVAL',
    'metric_namespace': 'QUOTA_METRIC_NAMESPACE',
    'log_level': 'LOG_LEVEL',
}

CONFIG_FILE_ENV = 'QUOTA_EXPORTER_CONFIG'


def split_csv(value: Any) -> List[str]:
    """
    拆分逗号分隔的列表，去掉空白和空项

    也接受 YAML 中直接写成列表的形式。
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        items = str(value).split(',')
    return [item.strip() for item in items if item.strip()]


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    解析监听地址

    Args:
        address: 形如 ":9101"、"0.0.0.0:9101"、"127.0.0.1:9001"

    Returns:
        (host, port)，host 为空时返回 "0.0.0.0"

    Raises:
        ValueError: 地址格式错误
    """
    host, sep, port = str(address).rpartition(':')
    if not sep:
        raise ValueError(f"监听地址格式错误（应为 host:port）: {address}")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"监听端口必须是整数: {address}")
    return host or '0.0.0.0', port_number


def load_config_file(config_path: str) -> Dict[str, Any]:
    """
    从 YAML 文件加载配置

    Args:
        config_path: 配置文件路径

    Returns:
        配置项字典（只包含 ExporterConfig 中定义的字段）

    Raises:
        FileNotFoundError: 文件不存在
        ValueError: YAML 解析失败或格式错误
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"配置文件不存在: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"YAML 解析失败: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("配置格式错误: 顶层必须是字典类型")

    known = {f.name for f in fields(ExporterConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"配置格式错误: 未知配置项 {', '.join(unknown)}")
    return data


def build_arg_parser() -> argparse.ArgumentParser:
    """命令行参数定义（未指定的参数为 None，表示不覆盖）"""
    parser = argparse.ArgumentParser(
        prog='gcloud-quota-exporter',
        description='Turns Google Cloud compute quota details into Prometheus time series.'
    )
    parser.add_argument('--config', help='YAML config file (env: QUOTA_EXPORTER_CONFIG)')
    parser.add_argument('--metrics-listen-address', dest='metrics_listen_address',
                        help='The address to listen on for Prometheus metrics requests.')
    parser.add_argument('--metrics-path', dest='metrics_path',
                        help='The path to listen for Prometheus metrics requests.')
    parser.add_argument('--google-compute-project', dest='projects',
                        help='The Google Cloud project ids to get quota for (comma-separated).')
    parser.add_argument('--google-compute-regions', dest='regions',
                        help='The Google Cloud regions to get quota for (comma-separated).')
    parser.add_argument('--credentials-file', dest='credentials_file',
                        help='Path to a Google service account key file.')
    parser.add_argument('--refresh-interval', dest='refresh_interval',
                        help='Base refresh interval in seconds; jittered by 25%%.')
    parser.add_argument('--metric-namespace', dest='metric_namespace',
                        help='Prefix for the published metric names.')
    parser.add_argument('--log-level', dest='log_level',
                        help='Logging level (DEBUG, INFO, WARNING, ERROR).')
    return parser


def load_exporter_config(argv: Optional[Sequence[str]] = None,
                         environ: Optional[Mapping[str, str]] = None) -> ExporterConfig:
    """
    加载 Exporter 配置

    Args:
        argv: 命令行参数（不含程序名），默认 sys.argv[1:]
        environ: 环境变量，默认 os.environ

    Returns:
        校验通过的 ExporterConfig

    Raises:
        FileNotFoundError: 指定的配置文件不存在
        ValueError: 配置格式错误或校验失败
    """
    environ = os.environ if environ is None else environ
    args = build_arg_parser().parse_args(argv)

    values: Dict[str, Any] = {}

    config_path = args.config or environ.get(CONFIG_FILE_ENV)
    if config_path:
        values.update(load_config_file(config_path))

    for name, env_var in ENV_VARS.items():
        env_value = environ.get(env_var)
        if env_value:
            values[name] = env_value

    for name in ENV_VARS:
        cli_value = getattr(args, name)
        if cli_value is not None:
            values[name] = cli_value

    config = _build_config(values)
    validate_config(config)
    return config


def _build_config(values: Dict[str, Any]) -> ExporterConfig:
    config = ExporterConfig()

    for name in ('metrics_listen_address', 'metrics_path', 'credentials_file', 'metric_namespace'):
        if values.get(name) is not None:
            setattr(config, name, str(values[name]).strip())

    if 'projects' in values:
        config.projects = split_csv(values['projects'])
    if 'regions' in values:
        config.regions = split_csv(values['regions'])

    if values.get('refresh_interval') is not None:
        try:
            config.refresh_interval = int(values['refresh_interval'])
        except (TypeError, ValueError):
            raise ValueError(f"refresh_interval 必须是整数: {values['refresh_interval']}")

    if values.get('log_level'):
        config.log_level = str(values['log_level']).strip().upper()

    if not config.credentials_file:
        config.credentials_file = None

    return config
