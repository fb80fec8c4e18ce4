"""Automod pipeline: configuration cache, spam limiter, content checks, actions."""

from aegis.automod.action_executor import ModerationActionExecutor
from aegis.automod.config_cache import GuildConfigCache
from aegis.automod.decision_engine import AutomodEngine
from aegis.automod.policy_matcher import PolicyMatcher
from aegis.automod.spam_tracker import SpamRateTracker

__all__ = [
    "AutomodEngine",
    "GuildConfigCache",
    "ModerationActionExecutor",
    "PolicyMatcher",
    "SpamRateTracker",
]
