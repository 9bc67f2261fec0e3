"""Rollout triggering for verified deliveries."""

from redeployer.rollout.trigger import RolloutTrigger

__all__ = ["RolloutTrigger"]
