"""
Stage-boundary storage helpers.

Paths are resolved through the Hadoop FileSystem of the running session, so
local paths and hdfs:// URLs behave the same way.
"""

import logging

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql import functions as F
from pyspark.sql.types import StructType

logger = logging.getLogger(__name__)

SUCCESS_MARKER = "_SUCCESS"


def write_mode(overwrite: bool) -> str:
    """Spark save mode for a stage output. Outputs are write-once by default."""
    return "overwrite" if overwrite else "errorifexists"


def _filesystem(spark: SparkSession, path: str):
    jvm = spark.sparkContext._jvm
    jpath = jvm.org.apache.hadoop.fs.Path(path)
    fs = jpath.getFileSystem(spark.sparkContext._jsc.hadoopConfiguration())
    return fs, jpath


def path_exists(spark: SparkSession, path: str) -> bool:
    fs, jpath = _filesystem(spark, path)
    return bool(fs.exists(jpath))


def is_complete(spark: SparkSession, path: str) -> bool:
    """True once a stage has committed its output (Spark writes _SUCCESS last)."""
    return path_exists(spark, f"{path.rstrip('/')}/{SUCCESS_MARKER}")


def delete_path(spark: SparkSession, path: str) -> bool:
    """
    Recursively delete a stage directory.

    Returns:
        True if something was deleted.
    """
    fs, jpath = _filesystem(spark, path)
    if not fs.exists(jpath):
        return False
    deleted = bool(fs.delete(jpath, True))
    if deleted:
        logger.info(f"Deleted {path}")
    return deleted


def conform_to_schema(df: DataFrame, schema: StructType) -> DataFrame:
    """Select and cast the columns of `schema`, in its order."""
    return df.select([F.col(f.name).cast(f.dataType).alias(f.name) for f in schema.fields])


def read_stage_output(spark: SparkSession, path: str, schema: StructType) -> DataFrame:
    """Read an intermediate Parquet dataset with its declared schema."""
    return spark.read.schema(schema).parquet(path)
