"""Keel: the decision core of a small tool-using agent."""

from keel.core import ConversationState, GuardrailChain, OrchestrationLoop, ProtocolClassifier, classify
from keel.skills import SkillContract, SkillRegistry

__all__ = [
    "ConversationState",
    "GuardrailChain",
    "OrchestrationLoop",
    "ProtocolClassifier",
    "SkillContract",
    "SkillRegistry",
    "classify",
]
__version__ = "0.1.0"
