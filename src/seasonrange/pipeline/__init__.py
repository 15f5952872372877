"""
Spark stages of the seasonal-spread pipeline.
"""

from .spark_processor import SparkWeatherAnalyzer
from .spark_session_manager import SparkSessionManager
from .models import (
    StationRecord,
    ReadingRecord,
    JoinedTuple,
    PartialMonthAggregate,
    RegionMonthStat,
    RegionSummary,
)
from .errors import (
    SeasonRangeError,
    ParseError,
    StageFailure,
    InvalidTransition,
    MissingStageInput,
)
from .readers import parse_station_line, parse_reading_line, normalize_precipitation
from .join import join_sorted_partition, secondary_sort_join, run_join_stage
from .aggregation import (
    aggregate_monthly_data,
    consolidate_monthly_data,
    accumulate_partials,
    consolidate_partials,
    run_monthly_stage,
    run_consolidation_stage,
)
from .ranking import summarize_region, rank_summaries, run_ranking_stage, read_summaries
from .state import PipelineState, PipelineProgress, Stage, StageReport
from .processing import PipelinePaths, run_stage, run_pipeline

__all__ = [
    "SparkWeatherAnalyzer",
    "SparkSessionManager",
    "StationRecord",
    "ReadingRecord",
    "JoinedTuple",
    "PartialMonthAggregate",
    "RegionMonthStat",
    "RegionSummary",
    "SeasonRangeError",
    "ParseError",
    "StageFailure",
    "InvalidTransition",
    "MissingStageInput",
    "parse_station_line",
    "parse_reading_line",
    "normalize_precipitation",
    "join_sorted_partition",
    "secondary_sort_join",
    "run_join_stage",
    "aggregate_monthly_data",
    "consolidate_monthly_data",
    "accumulate_partials",
    "consolidate_partials",
    "run_monthly_stage",
    "run_consolidation_stage",
    "summarize_region",
    "rank_summaries",
    "run_ranking_stage",
    "read_summaries",
    "PipelineState",
    "PipelineProgress",
    "Stage",
    "StageReport",
    "PipelinePaths",
    "run_stage",
    "run_pipeline",
]
