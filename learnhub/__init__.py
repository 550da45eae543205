"""learnhub - ordered lessons and learner progress service."""

__version__ = "0.1.0"
