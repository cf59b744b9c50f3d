"""Tests for marketclaw.agent.types (identities, tasks, manifests)."""

from __future__ import annotations

import json
import re

import pytest

from marketclaw.agent.errors import InvalidManifestError
from marketclaw.agent.specialists import BUILTIN_IDS, load_builtin_specialists
from marketclaw.agent.types import (
    MAX_COMPLETED_TASKS,
    AgentIdentity,
    AgentSpecialty,
    AgentTask,
    AgentVoice,
    SubAgentConfig,
    SubAgentManifest,
    SubAgentState,
    TaskStatus,
    generate_task_id,
)


# ---------------------------------------------------------------------------
# Enums / ids
# ---------------------------------------------------------------------------


class TestTaskStatus:
    def test_terminal(self) -> None:
        assert TaskStatus.COMPLETED.is_terminal
        assert TaskStatus.FAILED.is_terminal
        assert not TaskStatus.PENDING.is_terminal
        assert not TaskStatus.RUNNING.is_terminal


class TestGenerateTaskId:
    def test_format(self) -> None:
        assert re.fullmatch(r"task_\d{13}_[0-9a-z]{6}", generate_task_id())

    def test_unique(self) -> None:
        assert len({generate_task_id() for _ in range(200)}) == 200


# ---------------------------------------------------------------------------
# Config / state / task
# ---------------------------------------------------------------------------


class TestSubAgentConfig:
    def test_defaults(self) -> None:
        config = SubAgentConfig(
            identity=AgentIdentity(name="A", emoji="a"),
            specialty=AgentSpecialty(id="a", display_name="A", description="", system_prompt=""),
        )
        assert config.model is None
        assert config.enabled is True
        assert config.max_iterations == 10
        assert config.task_timeout_ms == 120_000


class TestSubAgentState:
    def test_history_bounded(self) -> None:
        state = SubAgentState(
            config=SubAgentConfig(
                identity=AgentIdentity(name="A", emoji="a"),
                specialty=AgentSpecialty(
                    id="a", display_name="A", description="", system_prompt=""
                ),
            )
        )
        for i in range(MAX_COMPLETED_TASKS + 3):
            state.completed_tasks.append(AgentTask(id=str(i), agent_id="a", prompt="p"))
        assert len(state.completed_tasks) == MAX_COMPLETED_TASKS
        assert state.completed_tasks[0].id == "3"


class TestAgentTask:
    def test_defaults(self) -> None:
        task = AgentTask(id="t1", agent_id="a", prompt="p")
        assert task.status == TaskStatus.PENDING
        assert task.created_at.tzinfo is not None
        assert task.started_at is None
        assert task.notify_on_complete is False

    def test_snapshot_is_independent(self) -> None:
        task = AgentTask(id="t1", agent_id="a", prompt="p")
        snap = task.snapshot()
        task.status = TaskStatus.COMPLETED
        assert snap.status == TaskStatus.PENDING

    def test_to_dict(self) -> None:
        task = AgentTask(id="t1", agent_id="a", prompt="p", context={"k": "v"})
        data = task.to_dict()
        assert data["status"] == "pending"
        assert data["context"] == {"k": "v"}
        assert isinstance(data["created_at"], str)
        assert data["completed_at"] is None
        json.dumps(data)


# ---------------------------------------------------------------------------
# Manifests
# ---------------------------------------------------------------------------


MANIFEST_JSON = {
    "id": "seo",
    "version": "1.2.0",
    "identity": {"name": "Sage", "emoji": "🔎", "voice": "professional"},
    "specialty": {
        "displayName": "SEO Specialist",
        "description": "Search optimization",
        "systemPrompt": "Optimize for search.",
        "tools": ["search_leads"],
    },
    "defaultModel": "openai/gpt-4o",
}


class TestManifestFromDict:
    def test_camel_case_keys(self) -> None:
        manifest = SubAgentManifest.from_dict(MANIFEST_JSON)
        assert manifest.id == "seo"
        assert manifest.version == "1.2.0"
        assert manifest.identity.voice == AgentVoice.PROFESSIONAL
        assert manifest.specialty.id == "seo"
        assert manifest.specialty.display_name == "SEO Specialist"
        assert manifest.specialty.system_prompt == "Optimize for search."
        assert manifest.specialty.tools == ["search_leads"]
        assert manifest.default_model == "openai/gpt-4o"

    def test_to_dict_round_trip(self) -> None:
        manifest = SubAgentManifest.from_dict(MANIFEST_JSON)
        assert SubAgentManifest.from_dict(manifest.to_dict()) == manifest

    @pytest.mark.parametrize("missing", ["id", "identity", "specialty"])
    def test_missing_required(self, missing: str) -> None:
        data = dict(MANIFEST_JSON)
        del data[missing]
        with pytest.raises(InvalidManifestError):
            SubAgentManifest.from_dict(data)

    def test_missing_name(self) -> None:
        data = dict(MANIFEST_JSON, identity={"emoji": "x"})
        with pytest.raises(InvalidManifestError, match="name"):
            SubAgentManifest.from_dict(data)

    def test_bad_voice(self) -> None:
        data = dict(MANIFEST_JSON, identity={"name": "S", "emoji": "x", "voice": "angry"})
        with pytest.raises(InvalidManifestError):
            SubAgentManifest.from_dict(data)

    def test_invalid_manifest_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            SubAgentManifest.from_dict({})

    def test_not_an_object(self) -> None:
        with pytest.raises(InvalidManifestError, match="JSON object"):
            SubAgentManifest.from_dict([1, 2])

    def test_bare_string_tools_wrapped(self) -> None:
        specialty = dict(MANIFEST_JSON["specialty"], tools="search_leads")
        manifest = SubAgentManifest.from_dict(dict(MANIFEST_JSON, specialty=specialty))
        assert manifest.specialty.tools == ["search_leads"]

    @pytest.mark.parametrize("tools", [{"a": 1}, ["ok", 3], 7])
    def test_bad_tools(self, tools) -> None:
        specialty = dict(MANIFEST_JSON["specialty"], tools=tools)
        with pytest.raises(InvalidManifestError, match="tools"):
            SubAgentManifest.from_dict(dict(MANIFEST_JSON, specialty=specialty))


class TestManifestFromMarkdown:
    def test_parse(self) -> None:
        content = (
            "---\n"
            "id: seo\n"
            "name: Sage\n"
            'emoji: "🔎"\n'
            "voice: casual\n"
            "display_name: SEO Specialist\n"
            "description: Search optimization\n"
            "tools: [a, b]\n"
            "model: openai/gpt-4o-mini\n"
            "---\n"
            "\n"
            "Optimize everything.\n"
        )
        manifest = SubAgentManifest.from_markdown(content)
        assert manifest.id == "seo"
        assert manifest.identity.name == "Sage"
        assert manifest.identity.voice == AgentVoice.CASUAL
        assert manifest.specialty.tools == ["a", "b"]
        assert manifest.specialty.system_prompt == "Optimize everything."
        assert manifest.default_model == "openai/gpt-4o-mini"

    def test_no_frontmatter(self) -> None:
        with pytest.raises(InvalidManifestError):
            SubAgentManifest.from_markdown("just text")

    def test_bad_yaml(self) -> None:
        with pytest.raises(InvalidManifestError):
            SubAgentManifest.from_markdown("---\nid: [unclosed\n---\nbody\n")

    def test_frontmatter_not_a_mapping(self) -> None:
        with pytest.raises(InvalidManifestError, match="mapping"):
            SubAgentManifest.from_markdown("---\n- a\n- b\n---\nbody\n")

    def test_from_file_not_utf8(self, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_bytes(b"\xff\xfe{}")
        with pytest.raises(InvalidManifestError, match="UTF-8"):
            SubAgentManifest.from_file(path)

    def test_from_file_json(self, tmp_path) -> None:
        path = tmp_path / "seo.json"
        path.write_text(json.dumps(MANIFEST_JSON), encoding="utf-8")
        assert SubAgentManifest.from_file(path).id == "seo"

    def test_from_file_bad_json(self, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidManifestError):
            SubAgentManifest.from_file(path)


# ---------------------------------------------------------------------------
# Built-in specialists
# ---------------------------------------------------------------------------


class TestBuiltinSpecialists:
    def test_all_load(self) -> None:
        manifests = load_builtin_specialists()
        assert [m.id for m in manifests] == list(BUILTIN_IDS)

    def test_identities(self) -> None:
        by_id = {m.id: m for m in load_builtin_specialists()}
        assert by_id["twitter"].identity.name == "Tweety"
        assert by_id["twitter"].identity.voice == AgentVoice.PLAYFUL
        assert by_id["researcher"].identity.name == "Scout"
        assert by_id["researcher"].identity.voice == AgentVoice.CASUAL
        assert by_id["linkedin"].identity.voice == AgentVoice.PROFESSIONAL
        assert by_id["producthunt"].identity.emoji == "🚀"

    def test_every_builtin_is_complete(self) -> None:
        for manifest in load_builtin_specialists():
            assert manifest.specialty.id == manifest.id
            assert manifest.specialty.display_name
            assert manifest.specialty.description
            assert manifest.specialty.system_prompt.startswith("You specialize in")
            assert manifest.specialty.tools
            assert manifest.identity.persona
