"""
Ranking stage: warmest and coldest month per region, and the final ordering
by seasonal spread.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from pyspark.sql import DataFrame, SparkSession

from ..utils.config import Config
from .models import MONTH_STAT_SCHEMA, OUTPUT_SCHEMA, RegionMonthStat, RegionSummary, month_name
from .storage import read_stage_output, write_mode

logger = logging.getLogger(__name__)


def summarize_region(region_code: str, stats: Iterable[RegionMonthStat]) -> Optional[RegionSummary]:
    """
    Pick the highest and lowest average-temperature months of one region.

    Ties go to the lower month number. A region without statistics yields
    None and is left out of the output.
    """
    high = low = None
    for stat in sorted(stats, key=lambda s: s.month):
        if high is None or stat.avg_temp > high.avg_temp:
            high = stat
        if low is None or stat.avg_temp < low.avg_temp:
            low = stat

    if high is None:
        return None

    return RegionSummary(
        region_code=region_code,
        high_month=high.month,
        high_avg_temp=high.avg_temp,
        high_avg_precip=high.avg_precip,
        low_month=low.month,
        low_avg_temp=low.avg_temp,
        low_avg_precip=low.avg_precip,
        spread=high.avg_temp - low.avg_temp,
    )


def ranking_key(summary: RegionSummary) -> Tuple[float, str]:
    return (summary.spread, summary.region_code)


def rank_summaries(summaries: Iterable[RegionSummary]) -> List[RegionSummary]:
    """Order summaries by ascending spread, then region code."""
    return sorted(summaries, key=ranking_key)


def _round(value: Optional[float], precision: Optional[int]) -> Optional[float]:
    if value is None or precision is None:
        return value
    return round(value, precision)


def format_summary(
    summary: RegionSummary, month_names: bool = False, precision: Optional[int] = 3
) -> Tuple:
    """Render a summary as a row of the final output."""
    def month(m):
        return month_name(m) if month_names else str(m)

    return (
        summary.region_code,
        month(summary.high_month),
        _round(summary.high_avg_temp, precision),
        _round(summary.high_avg_precip, precision),
        month(summary.low_month),
        _round(summary.low_avg_temp, precision),
        _round(summary.low_avg_precip, precision),
        _round(summary.spread, precision),
    )


def rank_region_stats(stats_df: DataFrame):
    """
    Summarize every region and collect the summaries in one sorted partition.

    Args:
        stats_df: DataFrame with the RegionMonthStat columns.

    Returns:
        A single-partition RDD of RegionSummary in ranking order.
    """
    summaries = (
        stats_df.rdd
        .map(lambda row: (
            row.region_code,
            RegionMonthStat(row.region_code, row.month, row.avg_temp, row.avg_precip),
        ))
        .groupByKey()
        .map(lambda kv: summarize_region(kv[0], kv[1]))
        .filter(lambda s: s is not None)
    )
    # Region count is small, so one partition is the collection point
    return (
        summaries
        .keyBy(ranking_key)
        .repartitionAndSortWithinPartitions(1, lambda _: 0)
        .values()
    )


def run_ranking_stage(
    spark: SparkSession, input_path: str, output_path: str, config: Config
) -> Dict[str, int]:
    """Read region-month statistics and write the ranked delimited output."""
    stats_df = read_stage_output(spark, input_path, MONTH_STAT_SCHEMA)
    ranked = rank_region_stats(stats_df)

    month_names, precision = config.month_names, config.output_precision
    rows = ranked.map(lambda s: format_summary(s, month_names, precision))
    output_df = spark.createDataFrame(rows, schema=OUTPUT_SCHEMA).coalesce(1)

    (
        output_df.write
        .mode(write_mode(config.overwrite))
        .option("header", str(config.output_header).lower())
        .option("sep", config.output_delimiter)
        .csv(output_path)
    )

    written = read_summaries(spark, output_path, config).count()
    logger.info(f"Ranking wrote {written} regions to {output_path}")
    return {"regions": written}


def read_summaries(spark: SparkSession, path: str, config: Config) -> DataFrame:
    """Read a ranked output written by run_ranking_stage."""
    return (
        spark.read
        .schema(OUTPUT_SCHEMA)
        .option("header", str(config.output_header).lower())
        .option("sep", config.output_delimiter)
        .csv(path)
    )
