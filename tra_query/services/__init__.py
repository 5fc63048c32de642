"""Services layer - Application orchestration.

Available services:
- TrainQueryService: answers free-form train queries end to end
"""

from .train_query_service import OutcomeKind, QueryOutcome, TrainQueryService

__all__ = ["TrainQueryService", "QueryOutcome", "OutcomeKind"]
