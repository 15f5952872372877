"""
Pipeline sequencing as an explicit state value.

Each stage invocation receives the current PipelineProgress and gets a new
one back, so stage ordering can be checked without a Spark session:

    IDLE -> JOIN_RUNNING -> JOIN_DONE -> AGG_RUNNING -> AGG_DONE
         -> CONSOLIDATE_RUNNING -> CONSOLIDATE_DONE -> RANK_RUNNING -> COMPLETE

FAILED is reachable from every running state and is terminal.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import InvalidTransition


class PipelineState(Enum):
    IDLE = "idle"
    JOIN_RUNNING = "join_running"
    JOIN_DONE = "join_done"
    AGG_RUNNING = "agg_running"
    AGG_DONE = "agg_done"
    CONSOLIDATE_RUNNING = "consolidate_running"
    CONSOLIDATE_DONE = "consolidate_done"
    RANK_RUNNING = "rank_running"
    COMPLETE = "complete"
    FAILED = "failed"


class Stage(Enum):
    JOIN = "join"
    AGGREGATE = "aggregate"
    CONSOLIDATE = "consolidate"
    RANK = "rank"

    @property
    def label(self) -> str:
        return self.value

    @property
    def running_state(self) -> PipelineState:
        return _RUNNING[self]

    @property
    def done_state(self) -> PipelineState:
        return _DONE[self]

    @property
    def previous(self) -> Optional["Stage"]:
        order = list(Stage)
        index = order.index(self)
        return order[index - 1] if index else None

    @property
    def ready_state(self) -> PipelineState:
        """State the pipeline must be in before this stage may start."""
        prev = self.previous
        return prev.done_state if prev else PipelineState.IDLE

    @classmethod
    def from_label(cls, label: str) -> "Stage":
        try:
            return cls(label.lower())
        except ValueError:
            raise ValueError(
                f"Unknown stage '{label}', expected one of {[s.value for s in cls]}"
            ) from None


_RUNNING = {
    Stage.JOIN: PipelineState.JOIN_RUNNING,
    Stage.AGGREGATE: PipelineState.AGG_RUNNING,
    Stage.CONSOLIDATE: PipelineState.CONSOLIDATE_RUNNING,
    Stage.RANK: PipelineState.RANK_RUNNING,
}

_DONE = {
    Stage.JOIN: PipelineState.JOIN_DONE,
    Stage.AGGREGATE: PipelineState.AGG_DONE,
    Stage.CONSOLIDATE: PipelineState.CONSOLIDATE_DONE,
    Stage.RANK: PipelineState.COMPLETE,
}


@dataclass(frozen=True)
class StageReport:
    """What a finished stage produced and how long it took."""
    stage: Stage
    output_path: str
    duration_seconds: float = 0.0
    counters: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PipelineProgress:
    state: PipelineState = PipelineState.IDLE
    current_stage: Optional[Stage] = None
    failed_stage: Optional[Stage] = None
    error: Optional[str] = None
    reports: Tuple[StageReport, ...] = ()

    @classmethod
    def resumed_at(cls, stage: Stage) -> "PipelineProgress":
        """Progress for a run that starts at `stage` on existing upstream output."""
        return cls(state=stage.ready_state)

    @property
    def is_terminal(self) -> bool:
        return self.state in (PipelineState.COMPLETE, PipelineState.FAILED)

    def start(self, stage: Stage) -> "PipelineProgress":
        if self.state is not stage.ready_state:
            raise InvalidTransition(
                f"Cannot start stage '{stage.label}' from state '{self.state.value}'"
            )
        return replace(self, state=stage.running_state, current_stage=stage)

    def finish(self, stage: Stage, report: StageReport) -> "PipelineProgress":
        if self.state is not stage.running_state:
            raise InvalidTransition(
                f"Cannot finish stage '{stage.label}' from state '{self.state.value}'"
            )
        return replace(
            self,
            state=stage.done_state,
            current_stage=None,
            reports=self.reports + (report,),
        )

    def fail(self, stage: Stage, error: BaseException) -> "PipelineProgress":
        if self.state is not stage.running_state:
            raise InvalidTransition(
                f"Cannot fail stage '{stage.label}' from state '{self.state.value}'"
            )
        return replace(
            self,
            state=PipelineState.FAILED,
            current_stage=None,
            failed_stage=stage,
            error=str(error),
        )

    def report_for(self, stage: Stage) -> Optional[StageReport]:
        for report in self.reports:
            if report.stage is stage:
                return report
        return None
