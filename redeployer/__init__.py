"""Webhook receiver that restarts a Kubernetes deployment after CI delivers."""

__version__ = "0.1.0"
