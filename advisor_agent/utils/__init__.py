"""Shared utilities."""

from advisor_agent.utils.config import load_config
from advisor_agent.utils.logging import configure_logging, setup_logging

__all__ = ["configure_logging", "load_config", "setup_logging"]
