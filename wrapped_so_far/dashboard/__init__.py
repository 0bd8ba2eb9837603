"""
Dashboard assembly

aggregator.py runs one load pass (required reads, then optional reads) into
a DashboardViewModel; insights.py derives statements and chart data from it;
report.py renders it as text.
"""

from .aggregator import (
    DashboardBuilder,
    DashboardLoader,
    DashboardViewModel,
    Fetched,
    OptionalResource,
    load_dashboard,
)
from .insights import audio_feature_insights, genre_insights, personality_style
from .report import build_report

__all__ = [
    'DashboardBuilder',
    'DashboardLoader',
    'DashboardViewModel',
    'Fetched',
    'OptionalResource',
    'load_dashboard',
    'audio_feature_insights',
    'genre_insights',
    'personality_style',
    'build_report',
]
