"""
Logging setup for seasonRange.

Three channels are configured:

- ``seasonrange``: the package log, at the level chosen on the command line.
- ``pyspark`` and ``py4j``: the Spark client libraries, held at the Spark
  log level from the configuration so they follow ``spark_log_level``.
- ``seasonrange.timing``: per-stage wall-clock durations. It has its own
  handler and stays at INFO, so timings are reported even when the package
  log is turned down to WARNING.
"""

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional, Union

TIMING_LOGGER = "seasonrange.timing"

# Spark log4j level names to Python logging levels
SPARK_LEVELS: Dict[str, Union[str, int]] = {
    "ALL": "DEBUG",
    "TRACE": "DEBUG",
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARN": "WARNING",
    "ERROR": "ERROR",
    "FATAL": "CRITICAL",
    "OFF": logging.CRITICAL + 1,
}


def python_level(spark_level: str) -> Union[str, int]:
    """Translate a Spark log level name such as WARN into a Python level."""
    try:
        return SPARK_LEVELS[spark_level.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown Spark log level '{spark_level}', expected one of {sorted(SPARK_LEVELS)}"
        ) from None


def build_logging_config(
    level: str = "INFO",
    log_filepath: Optional[Path] = None,
    spark_log_level: str = "WARN",
    timings: bool = True,
) -> Dict[str, Any]:
    """
    Build the dictConfig mapping for the pipeline.

    Args:
        level: Package log level.
        log_filepath: Rotating log file shared by every channel, if any.
        spark_log_level: Spark level name applied to pyspark and py4j.
        timings: Whether stage timings are reported.

    Returns:
        A mapping for logging.config.dictConfig.
    """
    spark_level = python_level(spark_log_level)
    console = ["console"]
    timing = ["timing"]

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "timing": {
                "format": "%(asctime)s [timing] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "file": {
                "format": "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
            "timing": {
                "class": "logging.StreamHandler",
                "level": "INFO",
                "formatter": "timing",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "seasonrange": {"level": level, "handlers": console, "propagate": False},
            TIMING_LOGGER: {
                "level": "INFO" if timings else "WARNING",
                "handlers": timing,
                "propagate": False,
            },
            "pyspark": {"level": spark_level, "handlers": console, "propagate": False},
            "py4j": {"level": spark_level, "handlers": console, "propagate": False},
        },
        "root": {"level": "WARNING", "handlers": console},
    }

    if log_filepath:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "file",
            "filename": str(log_filepath),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
        }
        for name in ("seasonrange", TIMING_LOGGER, "pyspark", "py4j"):
            config["loggers"][name]["handlers"] = config["loggers"][name]["handlers"] + ["file"]

    return config


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    spark_log_level: str = "WARN",
    timings: bool = True,
) -> None:
    """
    Configure logging for a pipeline run.

    Args:
        level: Package log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file name, created under log_dir.
        log_dir: Directory for log files.
        spark_log_level: Spark level name, normally Config.spark_log_level.
        timings: Report stage timings on their own channel.
    """
    log_filepath = None
    if log_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_filepath = log_path / log_file

    logging.config.dictConfig(
        build_logging_config(level, log_filepath, spark_log_level, timings)
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured with level {level}, Spark clients at {spark_log_level}")
    if log_filepath:
        logger.info(f"Log file: {log_filepath}")
