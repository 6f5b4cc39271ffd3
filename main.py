#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
GCloud Quota Exporter 主程序入口

功能：
- 启动 Flask HTTP 服务器
- 暴露 /metrics 端点供 Prometheus 抓取
- 暴露 /health 健康检查端点
- 后台定时拉取 Compute Engine 配额并更新指标
"""

from flask import Flask, jsonify
from prometheus_client import CONTENT_TYPE_LATEST
from werkzeug.serving import make_server
import logging
import signal
import sys
import threading
from typing import List, Optional, Sequence

from google.auth.exceptions import GoogleAuthError

# 导入配置加载模块
from config.loader import ExporterConfig, load_exporter_config

# 导入配额采集组件
from collector import MetricRegistry, QuotaCollector, QuotaFetcher, QuotaPublisher

# 导入 Compute Engine 配额客户端
from provider.gcp.compute_quotas import ComputeQuotasClient

# 导入 Scheduler
from scheduler.scheduler import QuotaScheduler

__version__ = '1.0.0'

logger = logging.getLogger(__name__)

# 创建 Flask 应用
app = Flask(__name__)

# 全局变量（在 main 函数中初始化）
metric_registry: Optional[MetricRegistry] = None
scheduler: Optional[QuotaScheduler] = None


def metrics():
    """
    Prometheus metrics 端点

    返回所有配额相关的 Prometheus 指标
    格式：Prometheus text format
    """
    if metric_registry is None:
        # 如果注册表未初始化，返回空指标
        return "# Exporter not initialized\n", 200, {'Content-Type': CONTENT_TYPE_LATEST}

    return metric_registry.generate_latest(), 200, {'Content-Type': CONTENT_TYPE_LATEST}


@app.route('/health')
def health():
    """
    健康检查端点

    返回 exporter 的健康状态
    """
    status = {'status': 'healthy', 'version': __version__}

    if scheduler:
        status['scheduler'] = scheduler.get_status()
    if metric_registry is not None:
        status['gauges'] = len(metric_registry)

    return jsonify(status), 200


def register_metrics_route(path: str = '/metrics'):
    """按配置的路径注册 /metrics 端点（只注册一次）"""
    if 'metrics' not in app.view_functions:
        app.add_url_rule(path, 'metrics', metrics)


def setup_logging(level: str = 'INFO'):
    """配置日志"""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # 设置特定模块的日志级别
    logging.getLogger('werkzeug').setLevel(logging.WARNING)  # 减少 HTTP 访问日志
    logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.ERROR)


class MetricsServer:
    """
    在后台线程中运行的 HTTP 服务器

    使用 werkzeug 的 make_server，便于收到退出信号后调用 shutdown() 优雅关闭。
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self._server = make_server(host, port, app, threaded=True)
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="MetricsServerThread",
            daemon=True
        )
        self._thread.start()
        logger.info(f"Serving Prometheus metrics on {self.host}:{self.port}")

    def shutdown(self):
        self._server.shutdown()
        if self._thread is not None:
            self._thread.join(timeout=5)


def run(config: ExporterConfig, source=None, shutdown_event: Optional[threading.Event] = None,
        install_signal_handlers: bool = True) -> int:
    """
    运行 exporter 直到收到退出信号或发生致命错误

    Args:
        config: Exporter 配置
        source: QuotaSource 实现（可选，默认按配置创建 ComputeQuotasClient）
        shutdown_event: 退出事件（可选，测试时由调用方控制）
        install_signal_handlers: 是否注册 SIGTERM / SIGINT 处理函数

    Returns:
        进程退出码：0 正常退出，1 致命错误
    """
    global metric_registry, scheduler

    shutdown_event = shutdown_event or threading.Event()
    fatal_errors: List[BaseException] = []

    # Phase 1: 初始化 Compute 客户端（失败即退出，不启动 HTTP 服务）
    if source is None:
        try:
            source = ComputeQuotasClient(credentials_file=config.credentials_file)
        except (GoogleAuthError, ValueError, OSError) as e:
            logger.critical(f"Creating google cloud client failed: {e}", exc_info=True)
            return 1

    # Phase 2: 初始化采集组件
    metric_registry = MetricRegistry()
    publisher = QuotaPublisher(metric_registry, namespace=config.metric_namespace, version=__version__)
    collector = QuotaCollector(
        fetcher=QuotaFetcher(source),
        publisher=publisher,
        projects=config.projects,
        regions=config.regions
    )

    def on_fatal(error: BaseException):
        fatal_errors.append(error)
        shutdown_event.set()

    scheduler = QuotaScheduler(
        collect_func=collector.collect,
        interval=config.refresh_interval,
        on_fatal=on_fatal
    )

    if install_signal_handlers:
        def handle_signal(signum, frame):
            logger.info(f"Received signal {signal.Signals(signum).name}. Waiting on running tasks to finish...")
            shutdown_event.set()

        # 首次采集之前注册，采集过程中收到信号也能正常退出
        signal.signal(signal.SIGTERM, handle_signal)
        signal.signal(signal.SIGINT, handle_signal)

    # Phase 3: 首次采集（在启动 HTTP 服务之前完成，保证第一次抓取不为空）
    try:
        scheduler.run_once()
    except Exception as e:
        logger.critical(f"Initial quota fetch failed: {e}", exc_info=True)
        return 1

    if shutdown_event.is_set():
        logger.info("Shutting down...")
        return 0

    # Phase 4: 启动 HTTP 服务和定时任务
    register_metrics_route(config.metrics_path)
    try:
        server = MetricsServer(config.listen_host, config.listen_port)
    except (OSError, SystemExit) as e:
        # werkzeug 绑定端口失败时会打印提示并 sys.exit(1)，而不是抛出 OSError
        logger.critical(f"Starting Prometheus listener on {config.metrics_listen_address} failed: {e}", exc_info=True)
        return 1
    server.start()
    scheduler.start()

    # Phase 5: 等待退出
    shutdown_event.wait()

    scheduler.stop()
    server.shutdown()

    if fatal_errors:
        logger.critical(f"Exiting after fatal error: {fatal_errors[0]}")
        return 1

    logger.info("Shutting down...")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    主函数

    Args:
        argv: 命令行参数（不含程序名），默认 sys.argv[1:]
    """
    try:
        config = load_exporter_config(argv)
    except (ValueError, FileNotFoundError) as e:
        setup_logging()
        logger.critical(f"配置错误: {e}")
        return 1

    setup_logging(config.log_level)

    logger.info("=" * 60)
    logger.info(f"Starting gcloud-quota-exporter {__version__}...")
    logger.info(f"项目列表: {config.projects}")
    logger.info(f"区域列表: {config.regions}")
    logger.info(f"刷新间隔: {config.refresh_interval} 秒 (±25%)")
    logger.info(f"监听地址: {config.metrics_listen_address}{config.metrics_path}")
    logger.info("=" * 60)

    return run(config)


if __name__ == '__main__':
    sys.exit(main())
