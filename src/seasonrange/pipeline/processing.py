"""
Runs the four stages in order, one barrier at a time.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict

from pyspark.sql import SparkSession

from ..utils.config import Config
from ..utils.logging_config import TIMING_LOGGER
from .aggregation import run_consolidation_stage, run_monthly_stage
from .errors import MissingStageInput, StageFailure
from .join import run_join_stage
from .ranking import run_ranking_stage
from .state import PipelineProgress, Stage, StageReport
from .storage import delete_path, is_complete, path_exists

logger = logging.getLogger(__name__)
timing_logger = logging.getLogger(TIMING_LOGGER)


@dataclass(frozen=True)
class PipelinePaths:
    """Inputs, per-stage outputs and the final output of one run."""
    stations: str
    readings: str
    join: str
    monthly: str
    consolidated: str
    output: str

    @classmethod
    def build(cls, stations: str, readings: str, output: str, config: Config) -> "PipelinePaths":
        return cls(
            stations=stations,
            readings=readings,
            join=config.stage_path(config.join_dir),
            monthly=config.stage_path(config.monthly_dir),
            consolidated=config.stage_path(config.consolidated_dir),
            output=output,
        )

    def output_for(self, stage: Stage) -> str:
        return {
            Stage.JOIN: self.join,
            Stage.AGGREGATE: self.monthly,
            Stage.CONSOLIDATE: self.consolidated,
            Stage.RANK: self.output,
        }[stage]

    def intermediate_paths(self):
        return [self.join, self.monthly, self.consolidated]


StageRunner = Callable[[SparkSession, PipelinePaths, Config], Dict[str, int]]

STAGE_RUNNERS: Dict[Stage, StageRunner] = {
    Stage.JOIN: lambda spark, paths, config: run_join_stage(
        spark, paths.stations, paths.readings, paths.join, config
    ),
    Stage.AGGREGATE: lambda spark, paths, config: run_monthly_stage(
        spark, paths.join, paths.monthly, config
    ),
    Stage.CONSOLIDATE: lambda spark, paths, config: run_consolidation_stage(
        spark, paths.monthly, paths.consolidated, config
    ),
    Stage.RANK: lambda spark, paths, config: run_ranking_stage(
        spark, paths.consolidated, paths.output, config
    ),
}


def _remove_partial_output(spark: SparkSession, path: str) -> None:
    """Delete an uncommitted stage output so a retry is not blocked by it."""
    if not path_exists(spark, path) or is_complete(spark, path):
        return
    try:
        delete_path(spark, path)
    except Exception as e:
        logger.warning(f"Could not remove partial output {path}: {e}")


def run_stage(
    spark: SparkSession,
    stage: Stage,
    progress: PipelineProgress,
    paths: PipelinePaths,
    config: Config,
    runners: Dict[Stage, StageRunner] = STAGE_RUNNERS,
) -> PipelineProgress:
    """
    Run one stage to completion.

    Args:
        spark: The Spark session.
        stage: Stage to run; progress must be at its predecessor's done state.
        progress: Current pipeline progress.
        paths: Locations of every stage's input and output.
        config: Pipeline configuration.
        runners: Stage implementations, replaceable for testing.

    Returns:
        Progress with the stage done and its report appended.

    Raises:
        StageFailure: If the engine failed the stage. The exception carries
            the FAILED progress. A partial output directory the stage
            created is removed first; one that was already there is kept.
    """
    progress = progress.start(stage)
    output_path = paths.output_for(stage)
    preexisting = path_exists(spark, output_path)
    logger.info(f"Starting stage '{stage.label}'")
    started = time.perf_counter()

    try:
        counters = runners[stage](spark, paths, config)
    except Exception as e:
        failed = progress.fail(stage, e)
        logger.error(f"Stage '{stage.label}' failed: {e}")
        # With overwrite the old output is already gone, so anything left is partial
        if not preexisting or config.overwrite:
            _remove_partial_output(spark, output_path)
        raise StageFailure(stage, e, progress=failed) from e

    duration = time.perf_counter() - started
    timing_logger.info(f"Stage '{stage.label}' completed in {duration:.4f}secs.")
    report = StageReport(
        stage=stage,
        output_path=output_path,
        duration_seconds=duration,
        counters=dict(counters or {}),
    )
    return progress.finish(stage, report)


def prepare_progress(spark: SparkSession, start_at: Stage, paths: PipelinePaths) -> PipelineProgress:
    """Initial progress for a run starting at `start_at`, checking upstream output."""
    upstream = start_at.previous
    if upstream is None:
        return PipelineProgress()

    upstream_path = paths.output_for(upstream)
    if not is_complete(spark, upstream_path):
        raise MissingStageInput(
            f"Stage '{start_at.label}' needs the completed output of "
            f"'{upstream.label}' at {upstream_path}"
        )
    logger.info(f"Resuming at stage '{start_at.label}' from {upstream_path}")
    return PipelineProgress.resumed_at(start_at)


def run_pipeline(
    spark: SparkSession,
    stations_path: str,
    readings_path: str,
    output_path: str,
    config: Config,
    start_at: Stage = Stage.JOIN,
    stop_after: Stage = Stage.RANK,
    runners: Dict[Stage, StageRunner] = STAGE_RUNNERS,
) -> PipelineProgress:
    """
    Run the stages from `start_at` through `stop_after`.

    Stage outputs already written stay on disk when a later stage fails.

    Returns:
        The final PipelineProgress with one StageReport per stage run.
    """
    stages = list(Stage)
    if stages.index(stop_after) < stages.index(start_at):
        raise ValueError(
            f"Cannot stop after '{stop_after.label}' when starting at '{start_at.label}'"
        )

    paths = PipelinePaths.build(stations_path, readings_path, output_path, config)
    progress = prepare_progress(spark, start_at, paths)

    started = time.perf_counter()
    for stage in stages[stages.index(start_at):stages.index(stop_after) + 1]:
        progress = run_stage(spark, stage, progress, paths, config, runners)

    timing_logger.info(f"Analysis complete in {time.perf_counter() - started:.4f}secs.")
    return progress
