"""Replicator: lifecycle supervisor for the autoscaling agent."""

__version__ = "0.1.0"
