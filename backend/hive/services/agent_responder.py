"""Agent Responder: one streamed agent reply to a human message in a swarm.

Invariants:
    - Validation, rate limiting and API key lookup all happen before the human message is
      stored, so a rejected request leaves no trace
    - The human message is committed before the provider is called
    - open_stream() pulls the first provider chunk before returning: provider failures
      that happen before any output surface as HTTP errors, not as SSE events
    - Mid-stream failures become one SSE error event followed by [DONE]
    - Exactly one AIUsage row per request that reached the provider (success or error)
    - The agent reply and usage row are written in a fresh session: the request session
      is closed by the time a StreamingResponse finishes

Design Decisions:
    - Random agent choice goes through an injected random.Random for deterministic tests
    - Token and cost figures are estimates (chars / 4) for every provider, so OpenAI and
      Google rows are comparable with Anthropic ones
"""

import logging
import random
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from hive.config import Settings
from hive.core.domain_types import (
    Framework, RateLimitEventType, SenderType, WebhookEventType,
)
from hive.core.errors import (
    ErrorContext, HiveError, InputValidationError, MissingAPIKeyError, ProviderAPIError,
)
from hive.core.prompt_builder import (
    build_conversation_messages, build_system_prompt, calculate_cost,
    estimate_input_tokens, estimate_tokens, resolve_model,
)
from hive.core.sse import SSE_DONE, format_sse
from hive.infrastructure.llm_providers import ProviderGateway
from hive.infrastructure.observability import PerformanceTracker, log_performance
from hive.models.agent import Agent
from hive.models.ai_usage import AIUsage
from hive.models.profile import Profile
from hive.models.swarm import Swarm
from hive.schemas.swarm import RespondRequest
from hive.services.conversation import ConversationService
from hive.services.integrations import IntegrationService
from hive.services.rate_limiter import RateLimiter
from hive.services.swarms import SwarmService
from hive.services.webhook_dispatcher import emit_event

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass
class PreparedResponse:
    """Everything needed to call the provider, resolved inside the request session."""
    swarm: Swarm
    user_id: uuid.UUID
    agent: Agent
    model: str
    api_key: str
    system_prompt: str
    turns: list[dict]
    user_message: str
    max_tokens: int
    temperature: float
    human_message_id: uuid.UUID
    input_tokens: int
    tracker: PerformanceTracker = field(default_factory=PerformanceTracker)

    @property
    def context(self) -> ErrorContext:
        return ErrorContext(
            user_id=str(self.user_id), swarm_id=str(self.swarm.id), agent_id=str(self.agent.id),
        )


class AgentResponder:

    def __init__(
        self,
        db: AsyncSession,
        gateway: ProviderGateway,
        settings: Settings,
        session_factory: SessionFactory,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.gateway = gateway
        self.settings = settings
        self.session_factory = session_factory
        self.rng = rng or random.Random()

    async def prepare(
        self, swarm_id: uuid.UUID, user: Profile, body: RespondRequest,
    ) -> PreparedResponse:
        tracker = PerformanceTracker()
        swarm = await SwarmService(self.db).get_accessible(swarm_id, user)
        agent = self._pick_agent(swarm, body.agent_id)
        tracker.checkpoint("load_swarm")

        limiter = RateLimiter(self.db)
        await limiter.enforce(
            user, RateLimitEventType.AI_REQUEST.value, resource_id=str(swarm.id),
        )
        api_key = await self._api_key(agent)

        conversation = ConversationService(self.db, self.settings.message_signing_secret)
        context_blocks = await conversation.list_context(swarm.id, shared_only=True)
        history = await conversation.recent_messages(swarm.id, HISTORY_LIMIT)
        system_prompt = build_system_prompt(agent, context_blocks, swarm.task, body.human_mode)
        turns = build_conversation_messages(history, {a.id: a.name for a in swarm.agents})
        input_tokens = estimate_input_tokens(system_prompt, turns, body.message)
        await limiter.ensure_allowed(user, RateLimitEventType.TOKENS.value, input_tokens)
        tracker.checkpoint("build_context")

        human = await conversation.add_message(
            swarm, SenderType.HUMAN.value, user.id, body.message,
            {"target_agent_id": str(agent.id)},
        )
        await self.db.commit()
        tracker.checkpoint("store_message")

        return PreparedResponse(
            swarm=swarm,
            user_id=user.id,
            agent=agent,
            model=resolve_model(agent.framework, agent.model),
            api_key=api_key,
            system_prompt=system_prompt,
            turns=turns,
            user_message=body.message,
            max_tokens=body.max_tokens,
            temperature=body.temperature,
            human_message_id=human.id,
            input_tokens=input_tokens,
            tracker=tracker,
        )

    def _pick_agent(self, swarm: Swarm, agent_id: uuid.UUID | None) -> Agent:
        agents = swarm.agents
        if not agents:
            raise InputValidationError("No agents in swarm")
        if agent_id is None:
            return self.rng.choice(agents)
        agent = next((a for a in agents if a.id == agent_id), None)
        if agent is None:
            raise InputValidationError("Agent is not a member of this swarm", field="agent_id")
        return agent

    async def _api_key(self, agent: Agent) -> str:
        key = await IntegrationService(self.db).get_api_key(agent.user_id, agent.framework)
        if key:
            return key
        if agent.framework == Framework.ANTHROPIC.value and self.settings.anthropic_api_key:
            return self.settings.anthropic_api_key
        raise MissingAPIKeyError(agent.framework)

    async def open_stream(self, prepared: PreparedResponse) -> AsyncIterator[str]:
        """Start the provider stream; returns an iterator of SSE-formatted strings."""
        chunks = self.gateway.stream_completion(
            framework=prepared.agent.framework,
            api_key=prepared.api_key,
            model=prepared.model,
            system=prepared.system_prompt,
            messages=prepared.turns,
            user_message=prepared.user_message,
            max_tokens=prepared.max_tokens,
            temperature=prepared.temperature,
            context=prepared.context,
        )
        try:
            first = await anext(chunks)
        except StopAsyncIteration:
            first = None
        except HiveError as e:
            await self._finish(prepared, "", e)
            raise
        prepared.tracker.checkpoint("first_chunk")
        return self._relay(prepared, chunks, first)

    async def _relay(
        self, prepared: PreparedResponse, chunks: AsyncIterator[str], first: str | None,
    ) -> AsyncIterator[str]:
        collected: list[str] = []
        error: HiveError | None = None
        try:
            if first:
                collected.append(first)
                yield format_sse({"content": first})
            async for text in chunks:
                if text:
                    collected.append(text)
                    yield format_sse({"content": text})
        except HiveError as e:
            error = e
        except Exception as e:
            logger.error(f"Unexpected stream failure: {e}", exc_info=True)
            error = ProviderAPIError(
                str(e), "PROVIDER_ERROR", prepared.agent.framework, context=prepared.context,
            )
        if error is not None:
            yield format_sse(error.to_sse_event())

        await self._finish(prepared, "".join(collected), error)
        yield SSE_DONE

    async def _finish(
        self, prepared: PreparedResponse, output: str, error: HiveError | None,
    ) -> None:
        output_tokens = estimate_tokens(output)
        input_cost, output_cost = calculate_cost(
            prepared.model, prepared.input_tokens, output_tokens,
        )
        latency_ms = int(prepared.tracker.total_ms())
        agent = prepared.agent

        async with self.session_factory() as db:
            if output and error is None:
                await ConversationService(db, self.settings.message_signing_secret).add_message(
                    prepared.swarm, SenderType.AGENT.value, agent.id, output,
                    {"model": prepared.model, "reply_to": str(prepared.human_message_id)},
                )
                RateLimiter(db).record(
                    prepared.user_id, RateLimitEventType.TOKENS.value,
                    prepared.input_tokens + output_tokens, str(prepared.swarm.id),
                )
            if error is not None:
                await emit_event(
                    db, prepared.swarm.user_id, WebhookEventType.AGENT_ERROR.value,
                    "agent", agent.id,
                    {"swarm_id": str(prepared.swarm.id), "error_code": error.code},
                )
            db.add(AIUsage(
                user_id=prepared.user_id,
                swarm_id=prepared.swarm.id,
                agent_id=agent.id,
                provider=agent.framework,
                model=prepared.model,
                input_tokens=prepared.input_tokens,
                output_tokens=output_tokens,
                input_cost=input_cost,
                output_cost=output_cost,
                latency_ms=latency_ms,
                status="error" if error is not None else "success",
                error_code=error.code if error is not None else None,
                error_message=(
                    getattr(error, "detail", error.message) if error is not None else None
                ),
                request_metadata={
                    "max_tokens": prepared.max_tokens,
                    "temperature": prepared.temperature,
                    "history_turns": len(prepared.turns),
                },
            ))
            await db.commit()

        prepared.tracker.checkpoint("persist")
        log_performance(
            logger, "agent_respond", prepared.tracker.metrics(),
            swarm_id=str(prepared.swarm.id), agent_id=str(agent.id),
            input_tokens=prepared.input_tokens, output_tokens=output_tokens,
            error_code=error.code if error is not None else None,
        )
