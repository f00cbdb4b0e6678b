from .base import BaseStepPerformer, FunctionStepPerformer, StepFailure
from .simulated import SimulatedStepPerformer

__all__ = ["BaseStepPerformer", "FunctionStepPerformer", "StepFailure", "SimulatedStepPerformer"]
