"""
Presentation layer: API client and plotly chart builders.
"""

from cubeview.charts.client import CubeClient, ResultSet
from cubeview.charts.render import CHART_TYPES, build_figure, save_html

__all__ = [
    "CHART_TYPES",
    "CubeClient",
    "ResultSet",
    "build_figure",
    "save_html",
]
