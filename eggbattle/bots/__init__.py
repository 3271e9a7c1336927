"""
Bots module - Scripted opponents.

Provides:
- BotPolicy: Interface for bot decision-making
- ScriptedOpponent: The CPU opponent (cure first, otherwise random)
- RandomPolicy / FirstLegalPolicy: Baselines for tests
"""

from .policy import (
    BotPolicy,
    BotDecision,
    RandomPolicy,
    FirstLegalPolicy,
    ScriptedOpponent,
    POLICIES,
    create_policy,
)

__all__ = [
    "BotPolicy",
    "BotDecision",
    "RandomPolicy",
    "FirstLegalPolicy",
    "ScriptedOpponent",
    "POLICIES",
    "create_policy",
]
