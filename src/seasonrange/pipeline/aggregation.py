"""
Monthly aggregation and cross-year consolidation stages.

The two stages use different grouping keys, (region, year, month) and then
(region, month), and carry sums and counts between them. Averages are only
formed in consolidation, after numerators and denominators have been summed
over all years.
"""

import logging
from typing import Dict, Iterable, List

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql import functions as F

from ..utils.config import Config
from .models import (
    JOINED_SCHEMA,
    MONTH_STAT_SCHEMA,
    PARTIAL_SCHEMA,
    JoinedTuple,
    PartialMonthAggregate,
    RegionMonthStat,
)
from .storage import conform_to_schema, read_stage_output, write_mode

logger = logging.getLogger(__name__)


def aggregate_monthly_data(df: DataFrame) -> DataFrame:
    """
    Reduce joined readings to sums and counts per region, year and month.

    Args:
        df: DataFrame with the JoinedTuple columns.

    Returns:
        A DataFrame with the PartialMonthAggregate columns.
    """
    return (
        df
        .filter(F.col("region_code").isNotNull() & (F.trim(F.col("region_code")) != ""))
        .filter(F.col("month").between(1, 12))
        .filter(F.col("temperature").isNotNull())
        .groupBy("region_code", "year", "month")
        .agg(
            F.sum("temperature").alias("temp_sum"),
            F.count(F.lit(1)).alias("temp_count"),
            # sum() skips nulls, so absent precipitation is never a zero
            F.coalesce(F.sum("precipitation"), F.lit(0.0)).alias("precip_sum"),
            F.count("precipitation").alias("precip_count"),
        )
    )


def consolidate_monthly_data(df: DataFrame) -> DataFrame:
    """
    Collapse the year dimension of monthly partials into one average per
    region and calendar month.

    Args:
        df: DataFrame with the PartialMonthAggregate columns.

    Returns:
        A DataFrame with the RegionMonthStat columns.
    """
    totals = (
        df
        .groupBy("region_code", "month")
        .agg(
            F.sum("temp_sum").alias("temp_sum"),
            F.sum("temp_count").alias("temp_count"),
            F.sum("precip_sum").alias("precip_sum"),
            F.sum("precip_count").alias("precip_count"),
        )
        .filter(F.col("temp_count") > 0)
    )
    return totals.select(
        "region_code",
        "month",
        (F.col("temp_sum") / F.col("temp_count")).alias("avg_temp"),
        F.when(
            F.col("precip_count") > 0, F.col("precip_sum") / F.col("precip_count")
        ).alias("avg_precip"),
    )


def accumulate_partials(tuples: Iterable[JoinedTuple]) -> List[PartialMonthAggregate]:
    """In-process equivalent of aggregate_monthly_data."""
    sums: Dict[tuple, list] = {}
    for t in tuples:
        if not t.region_code or not t.region_code.strip() or not 1 <= t.month <= 12:
            continue
        acc = sums.setdefault((t.region_code, t.year, t.month), [0.0, 0, 0.0, 0])
        acc[0] += t.temperature
        acc[1] += 1
        if t.precipitation is not None:
            acc[2] += t.precipitation
            acc[3] += 1

    return [
        PartialMonthAggregate(region, year, month, float(ts), tc, float(ps), pc)
        for (region, year, month), (ts, tc, ps, pc) in sorted(sums.items())
    ]


def consolidate_partials(partials: Iterable[PartialMonthAggregate]) -> List[RegionMonthStat]:
    """In-process equivalent of consolidate_monthly_data."""
    sums: Dict[tuple, list] = {}
    for p in partials:
        acc = sums.setdefault((p.region_code, p.month), [0.0, 0, 0.0, 0])
        acc[0] += p.temp_sum
        acc[1] += p.temp_count
        acc[2] += p.precip_sum
        acc[3] += p.precip_count

    stats = []
    for (region, month), (ts, tc, ps, pc) in sorted(sums.items()):
        if tc == 0:
            continue
        stats.append(RegionMonthStat(region, month, ts / tc, ps / pc if pc else None))
    return stats


def run_monthly_stage(
    spark: SparkSession, input_path: str, output_path: str, config: Config
) -> Dict[str, int]:
    """Read joined tuples, aggregate per (region, year, month) and write Parquet."""
    joined_df = read_stage_output(spark, input_path, JOINED_SCHEMA)
    partial_df = conform_to_schema(aggregate_monthly_data(joined_df), PARTIAL_SCHEMA)
    partial_df.write.mode(write_mode(config.overwrite)).parquet(output_path)

    written = read_stage_output(spark, output_path, PARTIAL_SCHEMA).count()
    logger.info(f"Monthly aggregation wrote {written:,} region-year-months to {output_path}")
    return {"partials": written}


def run_consolidation_stage(
    spark: SparkSession, input_path: str, output_path: str, config: Config
) -> Dict[str, int]:
    """Read monthly partials, consolidate per (region, month) and write Parquet."""
    partial_df = read_stage_output(spark, input_path, PARTIAL_SCHEMA)
    stats_df = conform_to_schema(consolidate_monthly_data(partial_df), MONTH_STAT_SCHEMA)
    stats_df.write.mode(write_mode(config.overwrite)).parquet(output_path)

    written = read_stage_output(spark, output_path, MONTH_STAT_SCHEMA).count()
    logger.info(f"Consolidation wrote {written:,} region-months to {output_path}")
    return {"region_months": written}
