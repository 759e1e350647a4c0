"""
Agent definitions — front agent + supervisor.
"""

from .front_agent import FrontAgent, FrontAgentPolicy, FrontTurn, InteractionCategory, PolicyViolation
from .supervisor import SupervisorAgent, build_supervisor, get_supervisor

__all__ = [
    "FrontAgent",
    "FrontAgentPolicy",
    "FrontTurn",
    "InteractionCategory",
    "PolicyViolation",
    "SupervisorAgent",
    "build_supervisor",
    "get_supervisor",
]
