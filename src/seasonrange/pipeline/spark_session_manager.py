"""
Manages the Spark session used by the pipeline stages.
"""

import logging
import os
from typing import Optional
from pyspark.sql import SparkSession

from ..utils.config import Config

logger = logging.getLogger(__name__)

class SparkSessionManager:
    """
    Manages the lifecycle of a Spark session.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initializes the session manager.

        Args:
            config: Pipeline configuration; defaults are used when omitted.
        """
        self.config = config or Config()
        self.spark: Optional[SparkSession] = None

    def get_spark_session(self) -> SparkSession:
        """
        Get or create a Spark session configured for the pipeline.

        Returns:
            A SparkSession instance.
        """
        if self.spark is None:
            shuffle_partitions = os.getenv(
                "SRG_SHUFFLE_PARTITIONS", str(self.config.spark_shuffle_partitions)
            )
            default_parallelism = os.getenv("SRG_DEFAULT_PARALLELISM")
            ui_port = os.getenv("SRG_SPARK_UI_PORT", "4040")

            builder = (
                SparkSession.builder
                .appName(self.config.spark_app_name)
                .master(self.config.spark_master)
                .config("spark.sql.adaptive.enabled", "true")
                .config("spark.sql.adaptive.coalescePartitions.enabled", "true")
                .config("spark.sql.shuffle.partitions", shuffle_partitions)
                .config("spark.ui.port", ui_port)
                .config("spark.hadoop.fs.file.impl", "org.apache.hadoop.fs.LocalFileSystem")
            )
            if default_parallelism:
                builder = builder.config("spark.default.parallelism", default_parallelism)

            self.spark = builder.getOrCreate()
            self.spark.sparkContext.setLogLevel(self.config.spark_log_level)
            logger.info(f"Spark session initialized (master={self.config.spark_master})")

        return self.spark

    def stop_spark_session(self) -> None:
        """
        Stops the current Spark session.
        """
        if self.spark:
            self.spark.stop()
            self.spark = None
            logger.info("Spark session stopped")
