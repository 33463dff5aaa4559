"""Tests for config loading and plugin wiring."""

from unittest.mock import AsyncMock

import pytest

from advisor_agent.errors import ToolConfigurationError
from advisor_agent.interfaces.api import build_app_from_config
from advisor_agent.llm.base import LLMResponse
from advisor_agent.streaming.titles import build_title_hook
from advisor_agent.tools.factory import build_tool_registry
from advisor_agent.tools.plugins import load_object
from advisor_agent.utils.config import load_config


def test_defaults_when_file_missing(tmp_path, monkeypatch):
    for name in ("OPENAI_EMBEDDING_MODEL", "EMBEDDING_DIMENSIONS", "VECTOR_INDEX_HOST"):
        monkeypatch.delenv(name, raising=False)
    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg["embedding"]["model"] == "text-embedding-3-small"
    assert cfg["embedding"]["dimensions"] == 768
    assert cfg["vector_index"]["metadata_content_limit"] == 40000
    assert cfg["tools"]["vector_search"] == {"top_k": 10, "min_similarity": 0.7}
    assert cfg["retry"]["max_attempts"] == 1


def test_yaml_merges_over_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("VECTOR_INDEX_NAME", raising=False)
    path = tmp_path / "agent_config.yaml"
    path.write_text("vector_index:\n  collection: proposals\ntools:\n  vector_search:\n    top_k: 5\n")
    cfg = load_config(path)
    assert cfg["vector_index"]["collection"] == "proposals"
    assert cfg["vector_index"]["port"] == 8000
    assert cfg["tools"]["vector_search"] == {"top_k": 5, "min_similarity": 0.7}


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("EMBEDDING_DIMENSIONS", "1536")
    monkeypatch.setenv("VECTOR_INDEX_HOST", "chroma.internal")
    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg["embedding"]["dimensions"] == 1536
    assert cfg["vector_index"]["host"] == "chroma.internal"


def test_registry_from_config_uses_search_defaults(tmp_path, embedding_client, index_client):
    plugin = tmp_path / "extra_tools.py"
    plugin.write_text(
        "from advisor_agent.tools.base import ParameterSpec, ToolResult\n"
        "\n"
        "def register_tools(registry, config):\n"
        "    @registry.register_function('ping', 'Health ping', 'ops', parameters={})\n"
        "    async def ping(params, context):\n"
        "        return ToolResult(success=True, data='pong', source_type='ops')\n"
    )
    cfg = load_config(tmp_path / "missing.yaml")
    cfg["tools"]["vector_search"]["min_similarity"] = 0.8
    cfg["tools"]["plugins"] = [str(plugin)]
    registry = build_tool_registry(cfg, embedding_client=embedding_client, index_client=index_client)
    assert sorted(d.name for d in registry.list_tools()) == ["ping", "vector_search"]
    assert registry.get_tool("vector_search").describe().parameters["min_similarity"].default == 0.8


def test_load_object_errors():
    with pytest.raises(ToolConfigurationError):
        load_object("advisor_agent.tools.registry")
    with pytest.raises(ToolConfigurationError):
        load_object("advisor_agent.tools.registry:DoesNotExist")
    with pytest.raises(ToolConfigurationError):
        load_object("no_such_module_here:thing")


saved_titles = []


async def save_title(session_id, title):
    saved_titles.append((session_id, title))


@pytest.mark.asyncio
async def test_title_hook_wired_from_config(tmp_path, embedding_client, index_client):
    cfg = load_config(tmp_path / "missing.yaml")
    cfg["titles"]["save_title"] = "tests.unit.test_config:save_title"
    llm = AsyncMock()
    llm.generate.return_value = LLMResponse(content='"Pricing review"')
    app = build_app_from_config(cfg, embedding_client=embedding_client, index_client=index_client, title_llm=llm)

    await app.state.title_hook("s1", [{"role": "user", "content": "Can we review pricing?"}])
    assert saved_titles[-1] == ("s1", "Pricing review")
    llm.generate.assert_awaited_once()


def test_no_title_hook_without_save_target(tmp_path, embedding_client, index_client):
    cfg = load_config(tmp_path / "missing.yaml")
    app = build_app_from_config(cfg, embedding_client=embedding_client, index_client=index_client)
    assert app.state.title_hook is None


def test_title_hook_builds_openai_provider(tmp_path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    cfg = load_config(tmp_path / "missing.yaml")
    cfg["titles"]["save_title"] = "tests.unit.test_config:save_title"
    assert callable(build_title_hook(cfg))
