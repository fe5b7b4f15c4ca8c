"""
Engine exceptions.

Cold start (no watch history, no usable embeddings) is not an error:
the run completes with zero selections.
"""


class RecommendationError(Exception):
    """Base class for recommendation engine errors."""


class ConfigurationError(RecommendationError):
    """No embedding model is configured; no run is created."""


class PersistenceError(RecommendationError):
    """A write to run, candidate, evidence or taste-vector storage failed."""


class RunStateError(RecommendationError):
    """A run was finalized twice or is otherwise not in the expected state."""

    def __init__(self, run_id: str, status: str):
        super().__init__(f"Run {run_id} is already {status}; only pending runs can be finalized")
        self.run_id = run_id
        self.status = status
