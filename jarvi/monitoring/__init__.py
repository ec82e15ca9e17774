"""
Monitoring Module - structured pipeline logging and counters.

Usage:
======
    from jarvi.monitoring import pipeline_monitor

    pipeline_monitor.track_message(request_id, user_id, text)
    stats = pipeline_monitor.get_stats()
"""

from jarvi.monitoring.monitor import PipelineMonitor, PipelineStats, pipeline_monitor

__all__ = [
    "PipelineMonitor",
    "PipelineStats",
    "pipeline_monitor",
]
