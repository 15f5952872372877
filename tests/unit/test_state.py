"""
Unit tests for pipeline sequencing.
"""

import pytest

from seasonrange.pipeline.errors import InvalidTransition
from seasonrange.pipeline.state import PipelineProgress, PipelineState, Stage, StageReport


def report(stage):
    return StageReport(stage=stage, output_path=f"/tmp/{stage.label}")


class TestStage:
    """Test cases for Stage ordering."""

    def test_order_and_predecessors(self):
        assert list(Stage) == [Stage.JOIN, Stage.AGGREGATE, Stage.CONSOLIDATE, Stage.RANK]
        assert Stage.JOIN.previous is None
        assert Stage.RANK.previous is Stage.CONSOLIDATE

    def test_ready_states(self):
        assert Stage.JOIN.ready_state is PipelineState.IDLE
        assert Stage.AGGREGATE.ready_state is PipelineState.JOIN_DONE
        assert Stage.CONSOLIDATE.ready_state is PipelineState.AGG_DONE
        assert Stage.RANK.ready_state is PipelineState.CONSOLIDATE_DONE

    def test_from_label(self):
        assert Stage.from_label("Consolidate") is Stage.CONSOLIDATE
        with pytest.raises(ValueError):
            Stage.from_label("shuffle")


class TestPipelineProgress:
    """Test cases for PipelineProgress transitions."""

    def test_full_sequence(self):
        progress = PipelineProgress()
        seen = [progress.state]
        for stage in Stage:
            progress = progress.start(stage)
            seen.append(progress.state)
            progress = progress.finish(stage, report(stage))
            seen.append(progress.state)

        assert seen == [
            PipelineState.IDLE,
            PipelineState.JOIN_RUNNING, PipelineState.JOIN_DONE,
            PipelineState.AGG_RUNNING, PipelineState.AGG_DONE,
            PipelineState.CONSOLIDATE_RUNNING, PipelineState.CONSOLIDATE_DONE,
            PipelineState.RANK_RUNNING, PipelineState.COMPLETE,
        ]
        assert progress.is_terminal
        assert [r.stage for r in progress.reports] == list(Stage)

    def test_cannot_skip_a_stage(self):
        with pytest.raises(InvalidTransition):
            PipelineProgress().start(Stage.AGGREGATE)

    def test_cannot_start_before_predecessor_is_done(self):
        progress = PipelineProgress().start(Stage.JOIN)

        with pytest.raises(InvalidTransition):
            progress.start(Stage.AGGREGATE)

    def test_cannot_finish_a_stage_that_is_not_running(self):
        with pytest.raises(InvalidTransition):
            PipelineProgress().finish(Stage.JOIN, report(Stage.JOIN))

    def test_failure_is_terminal(self):
        progress = PipelineProgress().start(Stage.JOIN)
        progress = progress.finish(Stage.JOIN, report(Stage.JOIN)).start(Stage.AGGREGATE)

        failed = progress.fail(Stage.AGGREGATE, RuntimeError("executor lost"))

        assert failed.state is PipelineState.FAILED
        assert failed.failed_stage is Stage.AGGREGATE
        assert "executor lost" in failed.error
        assert failed.is_terminal
        assert failed.report_for(Stage.JOIN) is not None
        with pytest.raises(InvalidTransition):
            failed.start(Stage.CONSOLIDATE)

    def test_transitions_return_new_values(self):
        idle = PipelineProgress()
        running = idle.start(Stage.JOIN)

        assert idle.state is PipelineState.IDLE
        assert running.state is PipelineState.JOIN_RUNNING

    def test_resumed_at(self):
        progress = PipelineProgress.resumed_at(Stage.RANK)

        assert progress.state is PipelineState.CONSOLIDATE_DONE
        assert progress.start(Stage.RANK).state is PipelineState.RANK_RUNNING
