"""Transformation agents.

Provides:
- AgentChain: Runs the agents of a compiled spec in fixed order
- Agent registry: Registration and retrieval of agent classes
- Built-in agents: impute, recode, bin, scale, dummycode
"""

# Registry must be imported first (agent modules use register_agent decorator)
from datatransform.agents.registry import (
    clear_registry,
    get_agent_class,
    list_agent_types,
    register_agent,
)

# Agent modules register themselves via @register_agent decorator
from datatransform.agents.base import TransformationAgent, format_number
from datatransform.agents.binning import BinAgent, BinMetadata
from datatransform.agents.chain import AGENT_ORDER, AgentChain, PartitionPartials
from datatransform.agents.dummycode import DummycodeAgent, DummycodeMetadata
from datatransform.agents.impute import ImputeAgent, ImputeMetadata
from datatransform.agents.recode import RecodeAgent, RecodeMetadata
from datatransform.agents.scale import ScaleAgent, ScaleMetadata

__all__ = [
    # Chain
    "AgentChain",
    "AGENT_ORDER",
    "PartitionPartials",
    # Registry
    "register_agent",
    "get_agent_class",
    "list_agent_types",
    "clear_registry",
    # Agents
    "TransformationAgent",
    "ImputeAgent",
    "RecodeAgent",
    "BinAgent",
    "ScaleAgent",
    "DummycodeAgent",
    # Metadata
    "ImputeMetadata",
    "RecodeMetadata",
    "BinMetadata",
    "ScaleMetadata",
    "DummycodeMetadata",
    "format_number",
]
