# -*- coding: utf-8 -*-
"""
定时任务模块

功能：
- 按固定间隔（带随机抖动）刷新配额数据
- 在后台线程中运行，不阻塞 HTTP 服务
"""

from scheduler.scheduler import QuotaScheduler, SchedulerState, apply_jitter

__all__ = ['QuotaScheduler', 'SchedulerState', 'apply_jitter']
