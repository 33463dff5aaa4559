"""Run the tool-core API."""

from __future__ import annotations

from advisor_agent.interfaces.api import run_api

if __name__ == "__main__":
    run_api()
