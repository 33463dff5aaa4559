"""Embed and upsert knowledge-base documents from a YAML or JSON file.

Each document needs ``content`` and should carry ``title`` and
``source_type``; an ``id`` is derived from them when absent.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from advisor_agent.tools.factory import build_vector_search_tool
from advisor_agent.utils.config import load_config
from advisor_agent.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def load_documents(path: Path) -> list[dict[str, Any]]:
    text = path.read_text(encoding="utf-8")
    docs = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    if isinstance(docs, dict):
        docs = docs.get("documents", [])
    return [d for d in docs or [] if isinstance(d, dict) and d.get("content")]


def document_id(doc: dict[str, Any]) -> str:
    if doc.get("id"):
        return str(doc["id"])
    source_type = doc.get("source_type", "document")
    key = doc.get("source_id") or doc.get("url") or doc.get("title") or doc["content"][:60]
    return f"{source_type}_{re.sub(r'[^a-zA-Z0-9]', '_', str(key))}"


async def seed(path: Path, config_path: Path | None = None) -> tuple[int, int]:
    config = load_config(config_path)
    tool = build_vector_search_tool(config)
    ok = failed = 0
    for doc in load_documents(path):
        metadata = {k: v for k, v in doc.items() if k not in ("id", "content")}
        metadata.setdefault("source_type", "document")
        metadata.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        result = await tool.upsert_content(document_id(doc), doc["content"], metadata)
        if result["success"]:
            ok += 1
        else:
            failed += 1
    return ok, failed


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", type=Path, help="YAML or JSON file with documents")
    parser.add_argument("--config", type=Path, default=None, help="Path to agent_config.yaml")
    args = parser.parse_args()
    configure_logging(load_config(args.config))
    ok, failed = asyncio.run(seed(args.path, args.config))
    print(f"Indexed {ok} documents ({failed} failed)")


if __name__ == "__main__":
    main()
