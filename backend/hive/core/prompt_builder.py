"""Prompt Builder: assembles provider-agnostic prompts for swarm agents.

Invariants:
    - System prompt section order: identity, role, task, human mode, shared context,
      response guidelines
    - Shared context blocks sorted critical > high > medium > low, unknown last, stable
    - Conversation history capped at the last MAX_HISTORY_MESSAGES messages
    - Pure: accepts ORM rows or any object with the same attributes

Design Decisions:
    - Agent replies are replayed as assistant turns prefixed with the speaking agent's
      name so every agent can tell its peers apart
    - Token counts are estimated (ceil(len / 4)); provider streams do not report usage
      consistently across frameworks
"""

import math

from hive.core.domain_types import HumanMode, SenderType

MAX_HISTORY_MESSAGES = 20

DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-sonnet-4-20250514",
    "google": "gemini-1.5-pro",
}

# USD per 1K tokens
MODEL_PRICING = {
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    "gpt-3.5-turbo": {"input": 0.0005, "output": 0.0015},
    "claude-sonnet-4-20250514": {"input": 0.003, "output": 0.015},
    "claude-3-5-sonnet-20241022": {"input": 0.003, "output": 0.015},
    "claude-3-opus-20240229": {"input": 0.015, "output": 0.075},
    "claude-3-haiku-20240307": {"input": 0.00025, "output": 0.00125},
    "gemini-1.5-pro": {"input": 0.00125, "output": 0.005},
    "gemini-1.5-flash": {"input": 0.000075, "output": 0.0003},
}
DEFAULT_PRICING = {"input": 0.001, "output": 0.002}

HUMAN_MODE_INSTRUCTIONS = {
    HumanMode.COLLABORATE.value: (
        "\n## Human Interaction Mode: COLLABORATE\n"
        "The human is providing suggestions and ideas. You should:\n"
        "- Consider their input thoughtfully but use your expertise to adapt or "
        "improve upon their suggestions\n"
        "- Feel free to respectfully disagree or propose alternatives if you have "
        "better ideas\n"
        "- Explain your reasoning when you deviate from their suggestions\n"
        "- Treat their input as collaborative brainstorming, not strict requirements"
    ),
    HumanMode.DIRECT.value: (
        "\n## Human Interaction Mode: DIRECT\n"
        "The human is giving direct commands. You MUST:\n"
        "- Follow their instructions precisely and completely\n"
        "- Execute their requests without deviation unless they ask for alternatives\n"
        "- If you cannot follow an instruction, explain why clearly\n"
        "- Prioritize their explicit requirements over your own judgment\n"
        "- Acknowledge and confirm understanding of their commands"
    ),
}

_PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def resolve_model(framework: str, model: str | None) -> str:
    return model or DEFAULT_MODELS.get(framework) or DEFAULT_MODELS["openai"]


def build_system_prompt(
    agent,
    context_blocks: list,
    swarm_task: str | None,
    human_mode: str | None = None,
) -> str:
    prompt = agent.system_prompt or f"You are {agent.name}, an AI assistant."

    if agent.role:
        prompt += f"\n\nYour role: {agent.role}"
    if swarm_task:
        prompt += f"\n\n## Current Task\n{swarm_task}"
    if human_mode and human_mode in HUMAN_MODE_INSTRUCTIONS:
        prompt += f"\n{HUMAN_MODE_INSTRUCTIONS[human_mode]}"

    if context_blocks:
        prompt += "\n\n## Shared Context"
        ordered = sorted(
            context_blocks,
            key=lambda b: _PRIORITY_ORDER.get(b.priority, len(_PRIORITY_ORDER)),
        )
        for block in ordered:
            prompt += f"\n\n### {block.name}\n{block.content}"

    prompt += (
        "\n\n## Response Guidelines\n"
        "- Be helpful and concise\n"
        f"- Stay in character as {agent.name}\n"
        "- Reference shared context when relevant\n"
        "- Collaborate effectively with other agents and humans"
    )
    return prompt


def build_conversation_messages(history: list, agent_names: dict) -> list[dict]:
    """Map stored messages to chat turns (user/assistant)."""
    turns = []
    for msg in history[-MAX_HISTORY_MESSAGES:]:
        if msg.sender_type == SenderType.HUMAN.value:
            turns.append({"role": "user", "content": msg.content})
        elif msg.sender_type == SenderType.AGENT.value:
            name = agent_names.get(msg.sender_id) or "Agent"
            turns.append({"role": "assistant", "content": f"[{name}]: {msg.content}"})
        else:
            turns.append({"role": "user", "content": f"[System]: {msg.content}"})
    return turns


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def estimate_input_tokens(
    system_prompt: str, turns: list[dict], user_message: str,
) -> int:
    joined = " ".join(t["content"] for t in turns)
    return estimate_tokens(system_prompt + joined + user_message)


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> tuple[float, float]:
    """(input_cost, output_cost) in USD."""
    pricing = MODEL_PRICING.get(model, DEFAULT_PRICING)
    return (
        input_tokens / 1000 * pricing["input"],
        output_tokens / 1000 * pricing["output"],
    )
