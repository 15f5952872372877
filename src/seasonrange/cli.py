"""
Command-line interface for seasonRange.
"""

from dataclasses import replace
from typing import Optional
import click
from pathlib import Path

from .utils.config import Config, load_config, DUPLICATE_POLICIES, PRECIPITATION_MODES
from .utils.logging_config import setup_logging
from .pipeline.errors import MissingStageInput, StageFailure
from .pipeline.state import PipelineProgress, Stage

STAGE_CHOICES = [stage.label for stage in Stage]


def _build_config(config_path: Optional[str], **overrides) -> Config:
    config = load_config(config_path)
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        return replace(config, **overrides)
    except ValueError as e:
        raise click.BadParameter(str(e))


def _echo_reports(progress: PipelineProgress) -> None:
    for report in progress.reports:
        click.echo(
            f"{report.stage.label:<12} {report.duration_seconds:>10.4f}s  {report.output_path}"
        )
        for name, value in report.counters.items():
            click.echo(f"{'':<12} {name}: {value:,}")


def _run(
    stations: str,
    readings: str,
    output: str,
    config: Config,
    start_at: Stage,
    stop_after: Stage,
) -> None:
    from .pipeline.spark_processor import SparkWeatherAnalyzer

    analyzer = SparkWeatherAnalyzer(config)
    try:
        progress = analyzer.run(stations, readings, output, start_at=start_at, stop_after=stop_after)
    except StageFailure as e:
        raise click.ClickException(
            f"Stage '{e.stage.label}' failed; outputs of completed stages are kept "
            f"under {config.work_dir}. Cause: {e.cause}"
        )
    except MissingStageInput as e:
        raise click.ClickException(str(e))
    finally:
        analyzer.stop_spark_session()

    _echo_reports(progress)
    click.echo(f"Pipeline state: {progress.state.value}")


def pipeline_options(func):
    """Options shared by the commands that run stages."""
    options = [
        click.option("--stations", "-s", type=str, default=None,
                     help="Station registry file, directory or glob (local or hdfs://)."),
        click.option("--readings", "-r", type=str, default=None,
                     help="Daily readings file, directory or glob (local or hdfs://)."),
        click.option("--output", "-o", type=str, default="output",
                     help="Final output directory."),
        click.option("--work-dir", type=str, default=None,
                     help="Base directory for intermediate stage outputs."),
        click.option("--config", "config_path", type=click.Path(path_type=str), default=None,
                     help="YAML configuration file."),
        click.option("--overwrite", is_flag=True, default=False,
                     help="Replace existing stage outputs instead of failing."),
        click.option("--partitions", type=int, default=None,
                     help="Number of join partitions."),
        click.option("--country", type=str, default=None,
                     help="Only join stations with this country code, e.g. US."),
        click.option("--duplicate-policy", type=click.Choice(DUPLICATE_POLICIES), default=None,
                     help="Which registry record wins for duplicate station ids."),
        click.option("--precipitation-mode", type=click.Choice(PRECIPITATION_MODES), default=None,
                     help="raw keeps recorded values, daily scales to 24 hours."),
        click.option("--month-names", is_flag=True, default=False,
                     help="Write month names instead of numbers."),
        click.option("--header", is_flag=True, default=False,
                     help="Write a header row to the final output."),
        click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
                     default="INFO", help="Logging level."),
        click.option("--log-file", type=str, default=None, help="Also log to logs/<file>."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _config_from_options(options: dict) -> Config:
    log_level, log_file = options.pop("log_level"), options.pop("log_file")
    config = _build_config(
        options.pop("config_path"),
        work_dir=options.pop("work_dir"),
        overwrite=options.pop("overwrite") or None,
        join_partitions=options.pop("partitions"),
        country_filter=options.pop("country"),
        duplicate_station_policy=options.pop("duplicate_policy"),
        precipitation_mode=options.pop("precipitation_mode"),
        month_names=options.pop("month_names") or None,
        output_header=options.pop("header") or None,
    )
    setup_logging(log_level, log_file, spark_log_level=config.spark_log_level)
    return config


@click.group()
@click.version_option()
def main() -> None:
    """seasonRange: rank regions by the spread of their monthly temperatures."""
    pass


@main.command()
@pipeline_options
@click.option(
    "--from-stage",
    type=click.Choice(STAGE_CHOICES),
    default=Stage.JOIN.label,
    help="Start at this stage, reusing completed upstream outputs.",
)
def run(from_stage: str, **options) -> None:
    """Run the pipeline: join, aggregate, consolidate and rank."""
    config = _config_from_options(options)
    start_at = Stage.from_label(from_stage)
    if start_at is Stage.JOIN and not (options["stations"] and options["readings"]):
        raise click.UsageError("--stations and --readings are required to run the join stage.")

    _run(options["stations"], options["readings"], options["output"], config, start_at, Stage.RANK)


@main.command()
@click.argument("name", type=click.Choice(STAGE_CHOICES))
@pipeline_options
def stage(name: str, **options) -> None:
    """Re-run a single stage against existing upstream output."""
    config = _config_from_options(options)
    selected = Stage.from_label(name)
    if selected is Stage.JOIN and not (options["stations"] and options["readings"]):
        raise click.UsageError("--stations and --readings are required to run the join stage.")

    _run(options["stations"], options["readings"], options["output"], config, selected, selected)


@main.command()
@click.option("--work-dir", type=str, default=None, help="Base directory of stage outputs.")
@click.option("--output", "-o", type=str, default=None, help="Also delete this final output.")
@click.option("--config", "config_path", type=click.Path(path_type=str), default=None,
              help="YAML configuration file.")
def clean(work_dir: Optional[str], output: Optional[str], config_path: Optional[str]) -> None:
    """Delete intermediate stage outputs (and optionally the final output)."""
    from .pipeline.spark_processor import SparkWeatherAnalyzer

    config = _build_config(config_path, work_dir=work_dir)
    analyzer = SparkWeatherAnalyzer(config)
    try:
        results = analyzer.clean(output)
    finally:
        analyzer.stop_spark_session()

    for path, deleted in results.items():
        click.echo(f"{'deleted' if deleted else 'missing'}  {path}")


@main.command()
@click.argument("path", type=str)
@click.option("--config", "config_path", type=click.Path(path_type=str), default=None,
              help="YAML configuration file.")
@click.option("--header", is_flag=True, default=False, help="The output has a header row.")
def show(path: str, config_path: Optional[str], header: bool) -> None:
    """Print a ranked output written by the pipeline."""
    from .pipeline.spark_processor import SparkWeatherAnalyzer

    config = _build_config(config_path, output_header=header or None)
    analyzer = SparkWeatherAnalyzer(config)
    try:
        rows = analyzer.read_summaries(path).collect()
    finally:
        analyzer.stop_spark_session()

    delimiter = config.output_delimiter
    for row in rows:
        click.echo(delimiter.join("" if v is None else str(v) for v in row))


@main.command("write-config")
@click.argument("path", type=click.Path(path_type=Path))
def write_config(path: Path) -> None:
    """Write the default configuration to a YAML file."""
    if path.exists():
        raise click.ClickException(f"'{path}' already exists.")
    Config().save(str(path))
    click.echo(f"Default configuration written to {path}")


if __name__ == "__main__":
    main()
