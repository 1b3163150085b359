"""Decision core: classification, state, guardrails and the orchestration loop."""

from .guardrails import Accept, GuardrailChain, GuardrailContext, PlausibilityGuardrail, Reject, guardrail
from .loop import LoopEvent, LoopResult, OrchestrationLoop
from .protocol import ActionCatalog, ProtocolClassifier, classify
from .retry import FailureKind, LoopPhase, RetryStateMachine
from .state import ConversationState
from .types import ActionOutcome, Done, Inconclusive, InvokeSkill, InvokeTool, Message, Role

__all__ = [
    "Accept",
    "ActionCatalog",
    "ActionOutcome",
    "ConversationState",
    "Done",
    "FailureKind",
    "GuardrailChain",
    "GuardrailContext",
    "Inconclusive",
    "InvokeSkill",
    "InvokeTool",
    "LoopEvent",
    "LoopPhase",
    "LoopResult",
    "Message",
    "OrchestrationLoop",
    "PlausibilityGuardrail",
    "ProtocolClassifier",
    "Reject",
    "RetryStateMachine",
    "Role",
    "classify",
    "guardrail",
]
