# -*- coding: utf-8 -*-
"""HTTP 端点和 run() 生命周期测试"""

import errno
import logging
import os
import signal
import socket
import threading

import pytest

import main
from collector import QuotaObservation, QuotaPublisher
from config.loader import ExporterConfig

from conftest import FakeQuotaSource, quota


@pytest.fixture
def client(registry, monkeypatch):
    monkeypatch.setattr(main, 'metric_registry', registry)
    monkeypatch.setattr(main, 'scheduler', None)
    main.register_metrics_route('/metrics')
    return main.app.test_client()


@pytest.fixture
def config():
    return ExporterConfig(
        metrics_listen_address='127.0.0.1:0',
        projects=['proj-a'],
        regions=['us-central1'],
        refresh_interval=1,
    )


@pytest.fixture(autouse=True)
def reset_globals(monkeypatch):
    monkeypatch.setattr(main, 'metric_registry', main.metric_registry)
    monkeypatch.setattr(main, 'scheduler', main.scheduler)


class TestEndpoints:

    def test_metrics_endpoint(self, client, registry):
        QuotaPublisher(registry).publish([
            QuotaObservation(metric='CPUS', limit=100, usage=42, project='proj-a'),
        ])

        response = client.get('/metrics')
        body = response.get_data(as_text=True)

        assert response.status_code == 200
        assert response.headers['Content-Type'].startswith('text/plain')
        assert 'gcloud_quota_global_cpus_limit{project="proj-a"} 100.0' in body
        assert 'gcloud_quota_global_cpus_usage{project="proj-a"} 42.0' in body

    def test_metrics_endpoint_before_initialization(self, client, monkeypatch):
        monkeypatch.setattr(main, 'metric_registry', None)
        response = client.get('/metrics')

        assert response.status_code == 200
        assert 'not initialized' in response.get_data(as_text=True)

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'
        assert response.get_json()['gauges'] == 0


class TestRun:

    def test_initial_fetch_failure_exits_before_serving(self, config, monkeypatch):
        source = FakeQuotaSource(failures=[('proj-a', None)])
        servers = []
        monkeypatch.setattr(main, 'MetricsServer', lambda *args: servers.append(args))

        assert main.run(config, source=source, install_signal_handlers=False) == 1
        assert servers == []
        assert source.calls == [('proj-a', None)]

    def test_signal_during_initial_fetch_exits_cleanly(self, config, monkeypatch):
        class SignallingSource(FakeQuotaSource):
            def get_project_quotas(self, project):
                os.kill(os.getpid(), signal.SIGTERM)
                return super().get_project_quotas(project)

        source = SignallingSource(global_quotas={'proj-a': [quota('CPUS', 100, 42)]})
        servers = []
        monkeypatch.setattr(main, 'MetricsServer', lambda *args: servers.append(args))
        previous = {sig: signal.getsignal(sig) for sig in (signal.SIGTERM, signal.SIGINT)}

        try:
            exit_code = main.run(config, source=source)
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        assert exit_code == 0
        assert servers == []
        # 正在执行的首次采集会完整结束
        assert source.calls == [('proj-a', None), ('proj-a', 'us-central1')]
        assert main.metric_registry.get_sample_value(
            'gcloud_quota_global_cpus_usage', {'project': 'proj-a'}
        ) == 42

    def test_initial_cycle_label_conflict_exits_nonzero(self, config, caplog):
        # 区域配额 GLOBAL_CPUS 与全局配额 CPUS 生成同名但 label 不同的 Gauge
        source = FakeQuotaSource(
            global_quotas={'proj-a': [quota('CPUS', 100, 42)]},
            region_quotas={('proj-a', 'us-central1'): [quota('GLOBAL_CPUS', 10, 1)]},
        )

        with caplog.at_level(logging.CRITICAL, logger='main'):
            assert main.run(config, source=source, install_signal_handlers=False) == 1

        assert 'Initial quota fetch failed' in caplog.text

    def test_listener_failure_exits_nonzero(self, config, monkeypatch, caplog):
        def address_in_use(host, port):
            raise OSError(errno.EADDRINUSE, 'Address already in use')

        monkeypatch.setattr(main, 'MetricsServer', address_in_use)
        source = FakeQuotaSource(global_quotas={'proj-a': [quota('CPUS', 100, 42)]})

        with caplog.at_level(logging.CRITICAL, logger='main'):
            assert main.run(config, source=source, install_signal_handlers=False) == 1

        assert 'Starting Prometheus listener' in caplog.text
        assert main.scheduler.get_status()['thread_alive'] is False

    def test_port_already_bound_exits_nonzero(self, config):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
            busy.bind(('127.0.0.1', 0))
            busy.listen(1)
            config.metrics_listen_address = f"127.0.0.1:{busy.getsockname()[1]}"
            source = FakeQuotaSource(global_quotas={'proj-a': [quota('CPUS', 100, 42)]})

            assert main.run(config, source=source, install_signal_handlers=False) == 1

    def test_graceful_shutdown(self, config):
        source = FakeQuotaSource(
            global_quotas={'proj-a': [quota('CPUS', 100, 42)]},
            region_quotas={('proj-a', 'us-central1'): [quota('CPUS', 24, 8)]},
        )
        shutdown = threading.Event()
        config.refresh_interval = 3600

        timer = threading.Timer(0.2, shutdown.set)
        timer.start()
        exit_code = main.run(config, source=source, shutdown_event=shutdown, install_signal_handlers=False)
        timer.cancel()

        assert exit_code == 0
        assert main.metric_registry.get_sample_value(
            'gcloud_quota_cpus_usage', {'project': 'proj-a', 'region': 'us-central1'}
        ) == 8
        assert main.scheduler.get_status()['state'] == 'cancelled'

    def test_fetch_failure_in_loop_exits_nonzero(self, config):
        source = FakeQuotaSource(global_quotas={'proj-a': [quota('CPUS', 100, 42)]})
        get_region_quotas = source.get_region_quotas

        def fail_after_first(project, region):
            if len(source.calls) > 2:
                source.calls.append((project, region))
                raise RuntimeError('quota api unavailable')
            return get_region_quotas(project, region)

        source.get_region_quotas = fail_after_first
        config.refresh_interval = 0.05
        shutdown = threading.Event()
        watchdog = threading.Timer(10, shutdown.set)
        watchdog.start()

        exit_code = main.run(config, source=source, shutdown_event=shutdown, install_signal_handlers=False)
        watchdog.cancel()

        assert exit_code == 1
        assert isinstance(main.scheduler.last_error.cause, RuntimeError)


class TestMain:

    def test_config_error_exits_nonzero(self, monkeypatch):
        monkeypatch.delenv('GCLOUD_PROJECT_NAME', raising=False)
        monkeypatch.delenv('QUOTA_EXPORTER_CONFIG', raising=False)
        assert main.main([]) == 1

    def test_client_construction_failure_exits_nonzero(self, config, monkeypatch):
        from google.auth.exceptions import DefaultCredentialsError

        def raise_credentials_error(credentials_file=None):
            raise DefaultCredentialsError('no credentials')

        monkeypatch.setattr(main, 'ComputeQuotasClient', raise_credentials_error)
        assert main.run(config, install_signal_handlers=False) == 1
