"""
PySpark front end for the seasonal-spread pipeline.
"""

import logging
from typing import Dict, Optional

from pyspark.sql import DataFrame

from ..utils.config import Config
from .aggregation import run_consolidation_stage, run_monthly_stage
from .join import run_join_stage
from .processing import PipelinePaths, run_pipeline
from .ranking import read_summaries, run_ranking_stage
from .spark_session_manager import SparkSessionManager
from .state import PipelineProgress, Stage
from .storage import delete_path

logger = logging.getLogger(__name__)

class SparkWeatherAnalyzer:
    """
    Owns a Spark session and runs the pipeline stages against it.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initializes the analyzer.

        Args:
            config: Pipeline configuration.
        """
        self.config = config or Config()
        self.session_manager = SparkSessionManager(self.config)
        self.spark = self.session_manager.get_spark_session()

    def stop_spark_session(self):
        """
        Stops the Spark session.
        """
        self.session_manager.stop_spark_session()

    def join(self, stations_path: str, readings_path: str, output_path: str) -> Dict[str, int]:
        return run_join_stage(self.spark, stations_path, readings_path, output_path, self.config)

    def aggregate(self, input_path: str, output_path: str) -> Dict[str, int]:
        return run_monthly_stage(self.spark, input_path, output_path, self.config)

    def consolidate(self, input_path: str, output_path: str) -> Dict[str, int]:
        return run_consolidation_stage(self.spark, input_path, output_path, self.config)

    def rank(self, input_path: str, output_path: str) -> Dict[str, int]:
        return run_ranking_stage(self.spark, input_path, output_path, self.config)

    def read_summaries(self, path: str) -> DataFrame:
        return read_summaries(self.spark, path, self.config)

    def run(
        self,
        stations_path: str,
        readings_path: str,
        output_path: str,
        start_at: Stage = Stage.JOIN,
        stop_after: Stage = Stage.RANK,
    ) -> PipelineProgress:
        return run_pipeline(
            self.spark, stations_path, readings_path, output_path, self.config,
            start_at=start_at, stop_after=stop_after,
        )

    def clean(self, output_path: Optional[str] = None) -> Dict[str, bool]:
        """
        Delete the intermediate stage directories, and the final output if given.

        Returns:
            Mapping of path to whether it was deleted.
        """
        paths = PipelinePaths.build("", "", output_path or "", self.config)
        targets = paths.intermediate_paths()
        if output_path:
            targets.append(output_path)
        return {path: delete_path(self.spark, path) for path in targets}
