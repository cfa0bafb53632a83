"""Scenario-driven concurrent workload engine."""

from .executor import RequestExecutor, RequestResult, build_client
from .metrics import CheckTally, MetricsAggregator, Trend, TrendSummary
from .profiles import DEFAULT_PLAN, FixedProfile, RampingProfile, ScenarioConfig, Stage
from .scenarios import SCENARIO_BODIES
from .scheduler import ScenarioRun, ScenarioScheduler, ScenarioState
from .worker import ScenarioBody, Worker, WorkerContext

__all__ = [
    "DEFAULT_PLAN",
    "SCENARIO_BODIES",
    "CheckTally",
    "FixedProfile",
    "MetricsAggregator",
    "RampingProfile",
    "RequestExecutor",
    "RequestResult",
    "ScenarioBody",
    "ScenarioConfig",
    "ScenarioRun",
    "ScenarioScheduler",
    "ScenarioState",
    "Stage",
    "Trend",
    "TrendSummary",
    "Worker",
    "WorkerContext",
    "build_client",
]
