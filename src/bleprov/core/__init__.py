"""
Core bleprov components.

This module contains the agent and configuration.
"""

from bleprov.core.agent import ProvisioningAgent, run_agent
from bleprov.core.config import Config, load_config

__all__ = [
    "ProvisioningAgent",
    "run_agent",
    "Config",
    "load_config",
]
