"""
seasonRange: rank U.S. regions by the spread between their warmest and
coldest month, computed from weather-station readings with PySpark.

The pipeline joins a station registry against multi-year daily readings,
aggregates per region and month, and writes one summary per region ordered
by ascending spread. Import the Spark pieces from `seasonrange.pipeline`.
"""

__version__ = "0.1.0"
__author__ = "seasonRange Team"

__all__ = ["__version__"]
