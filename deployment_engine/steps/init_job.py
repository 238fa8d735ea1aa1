# deployment_engine/steps/init_job.py

from deployment_engine.init_job.tracker import InitJobTracker
from deployment_engine.steps.base import ConvergenceContext, StepOutcome


class InitJobStep:
    """Pipeline adapter for the init job tracker."""

    label = "InitJob"

    def __init__(self, tracker: InitJobTracker):
        self._tracker = tracker

    def converge(self, context: ConvergenceContext) -> StepOutcome:
        return self._tracker.track(context.app)
