from .base import Learner, LearnerError, get_learner

__all__ = [
    "Learner",
    "LearnerError",
    "get_learner",
]
