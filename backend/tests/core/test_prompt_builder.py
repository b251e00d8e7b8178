"""Prompt Builder: section order, context priority, history mapping and costs."""

from dataclasses import dataclass
from uuid import uuid4

import pytest

from hive.core.prompt_builder import (
    DEFAULT_MODELS, MAX_HISTORY_MESSAGES, build_conversation_messages, build_system_prompt,
    calculate_cost, estimate_input_tokens, estimate_tokens, resolve_model,
)


@dataclass
class FakeAgent:
    name: str
    role: str | None = None
    system_prompt: str | None = None


@dataclass
class Block:
    name: str
    content: str
    priority: str


@dataclass
class Msg:
    sender_type: str
    content: str
    sender_id: object = None


def test_default_identity_and_guidelines():
    prompt = build_system_prompt(FakeAgent("Scout"), [], None)
    assert prompt.startswith("You are Scout, an AI assistant.")
    assert prompt.endswith("- Collaborate effectively with other agents and humans")
    assert "Stay in character as Scout" in prompt


def test_sections_appear_in_order():
    agent = FakeAgent("Scout", role="Researcher", system_prompt="Custom.")
    blocks = [Block("Brief", "Ship it", "high")]
    prompt = build_system_prompt(agent, blocks, "Plan the launch", "direct")
    positions = [
        prompt.index("Custom."),
        prompt.index("Your role: Researcher"),
        prompt.index("## Current Task\nPlan the launch"),
        prompt.index("Human Interaction Mode: DIRECT"),
        prompt.index("## Shared Context"),
        prompt.index("## Response Guidelines"),
    ]
    assert positions == sorted(positions)


def test_observe_mode_adds_no_instructions():
    prompt = build_system_prompt(FakeAgent("Scout"), [], None, "observe")
    assert "Human Interaction Mode" not in prompt


def test_context_blocks_sorted_by_priority_stably():
    blocks = [
        Block("low-1", "x", "low"),
        Block("odd", "x", "whatever"),
        Block("crit", "x", "critical"),
        Block("med", "x", "medium"),
        Block("high", "x", "high"),
        Block("low-2", "x", "low"),
    ]
    prompt = build_system_prompt(FakeAgent("Scout"), blocks, None)
    order = [b.name for b in blocks]
    found = sorted(order, key=lambda name: prompt.index(f"### {name}\n"))
    assert found == ["crit", "high", "med", "low-1", "low-2", "odd"]


def test_history_maps_roles_and_names():
    agent_id = uuid4()
    history = [
        Msg("human", "hi"),
        Msg("agent", "hello", agent_id),
        Msg("agent", "who?", uuid4()),
        Msg("system", "joined"),
    ]
    turns = build_conversation_messages(history, {agent_id: "Scout"})
    assert turns == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "[Scout]: hello"},
        {"role": "assistant", "content": "[Agent]: who?"},
        {"role": "user", "content": "[System]: joined"},
    ]


def test_history_capped():
    history = [Msg("human", str(i)) for i in range(MAX_HISTORY_MESSAGES + 5)]
    turns = build_conversation_messages(history, {})
    assert len(turns) == MAX_HISTORY_MESSAGES
    assert turns[0]["content"] == "5"


def test_resolve_model():
    assert resolve_model("google", None) == DEFAULT_MODELS["google"]
    assert resolve_model("anthropic", "claude-3-haiku-20240307") == "claude-3-haiku-20240307"
    assert resolve_model("unknown", None) == DEFAULT_MODELS["openai"]


def test_token_estimates_round_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcde") == 2
    assert estimate_input_tokens("abcd", [{"role": "user", "content": "ab"}], "cd") == 2


def test_calculate_cost_uses_pricing_table_or_default():
    assert calculate_cost("gpt-4o", 1000, 2000) == pytest.approx((0.0025, 0.02))
    assert calculate_cost("mystery", 1000, 1000) == pytest.approx((0.001, 0.002))
