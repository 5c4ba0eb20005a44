"""Agent service for the LangGraph ReAct sales assistant."""

import asyncio
import json
from collections.abc import AsyncGenerator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    HumanMessage,
    SystemMessage,
)
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool
from langgraph.errors import GraphRecursionError
from langgraph.prebuilt import create_react_agent

from sales_assistant.core.settings import ChatConfig
from sales_assistant.schemas.chat_schema import ChatRequest, ChatTurn, StreamEvent

logger = structlog.get_logger()

SYSTEM_PROMPT_TEMPLATE = """\
You are the Above + Beyond AI sales assistant. You help the sales team at \
Above + Beyond Group, a luxury corporate hospitality company based in London.

## Your Role
- Answer questions about leads, deals, pipeline, events, clients, finances, calls, and sales performance
- Use your tools to fetch live data from Salesforce and Aircall. Never guess or make up data
- Present data clearly with key numbers and insights
- All amounts are in GBP (£)
- Be concise but thorough; this is an internal tool for busy salespeople
- You can also update lead statuses, deal stages, and create notes when asked

## Data Sources
- Salesforce: Leads, Contacts, Accounts, Opportunities, Events (Event__c), \
Commissions (Commission__c), Targets (Target__c), Notes (A_B_Note__c)
- Aircall: call logs, call stats, rep call activity, user directory

## Business Context
- Above + Beyond sells luxury corporate hospitality packages for Formula 1, tennis, \
rugby, football, live music, culinary experiences, and other premium events
- Opportunity stages: Open (New, Deposit Taken, Agreement Sent), \
Won (Agreement Signed, Amended, Amendment Signed), Lost (Closed Lost, Cancelled)
- Lead statuses: New, Working, Prospect, Interested, Nurturing, Qualified, Unqualified
- Lead sources grouped: Digital Ads, Organic, Outbound, Referral, Events, Database, Email, Other
- Ticket types per event are tracked with Required/Booked/Remaining fields
- Commission is tracked monthly (KPI targets, commission rate, clawback)

## Response Guidelines
- Format monetary values as £X,XXX or £X,XXX.XX
- For lead/deal lists, summarise the count and highlight top items
- When data is empty, say so clearly
- If a query is ambiguous, ask a clarifying question before calling tools
- When a tool returns an error, tell the user what failed instead of guessing
- When showing individual records, include key identifiers (name, stage, amount, owner)
- For write actions, confirm what you did and show the updated state

## Date Context
Today: {today}"""


@dataclass
class TurnTranscript:
    """Assistant output collected while a turn streams."""

    text_parts: list[str] = field(default_factory=list)
    tool_invocations: list[dict[str, Any]] = field(default_factory=list)
    model_steps: int = 0
    pending_tool_calls: bool = False

    @property
    def text(self) -> str:
        return "".join(self.text_parts)


def _chunk_text(content: str | list[Any]) -> str:
    """Extract text from a chunk; Anthropic chunks carry content blocks."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _parse_tool_output(output: Any) -> Any:
    content = getattr(output, "content", output)
    if isinstance(content, str):
        try:
            return json.loads(content)
        except ValueError:
            return content
    return content


class AgentService:
    """Runs one chat turn through the ReAct agent and streams events."""

    def __init__(
        self,
        llm: BaseChatModel,
        tools: Sequence[BaseTool],
        chat_config: ChatConfig,
        timezone: tzinfo,
    ) -> None:
        self._config = chat_config
        self._timezone = timezone
        self._agent = create_react_agent(
            model=llm,
            tools=list(tools),
            prompt=self._build_system_prompt,
        )

    @property
    def recursion_limit(self) -> int:
        # Each model step is followed by at most one tool step.
        return 2 * self._config.max_steps

    async def stream_chat(
        self,
        request: ChatRequest,
        transcript: TurnTranscript | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Stream the agent's answer to the latest user message.

        Yields ``token``, ``tool_call`` and ``tool_result`` events, then a
        single ``done`` event. Timeouts and model failures yield an ``error``
        event instead of ``done``.
        """
        transcript = transcript if transcript is not None else TurnTranscript()
        config: RunnableConfig = {"recursion_limit": self.recursion_limit}
        inputs = {"messages": self._build_langchain_messages(request.messages)}
        hit_recursion_limit = False

        try:
            async with asyncio.timeout(self._config.max_duration_seconds):
                async for event in self._agent.astream_events(
                    inputs, config=config, version="v2"
                ):
                    stream_event = self._process_stream_event(dict(event), transcript)
                    if stream_event:
                        yield stream_event
        except GraphRecursionError:
            hit_recursion_limit = True
        except TimeoutError:
            logger.warning(
                "Chat turn timed out",
                seconds=self._config.max_duration_seconds,
                tool_calls=len(transcript.tool_invocations),
            )
            yield StreamEvent(
                event="error", data="The response took too long and was stopped."
            )
            return
        except Exception:
            logger.exception("Chat turn failed")
            yield StreamEvent(
                event="error",
                data="Something went wrong while generating the response.",
            )
            return

        step_limit_reached = hit_recursion_limit or transcript.pending_tool_calls
        if step_limit_reached:
            logger.info(
                "Chat step limit reached",
                max_steps=self._config.max_steps,
                model_steps=transcript.model_steps,
            )

        yield StreamEvent(
            event="done",
            data=json.dumps(
                {
                    "conversation_id": request.conversation_id,
                    "step_limit_reached": step_limit_reached,
                    "tool_calls": len(transcript.tool_invocations),
                }
            ),
        )

    def _build_system_prompt(self, state: dict) -> list[BaseMessage]:
        """Prepend the system prompt with today's business-local date."""
        now = datetime.now(tz=self._timezone)
        today = f"{now:%A} {now.day} {now:%B %Y}"
        return [
            SystemMessage(content=SYSTEM_PROMPT_TEMPLATE.format(today=today)),
            *state["messages"],
        ]

    @staticmethod
    def _build_langchain_messages(turns: list[ChatTurn]) -> list[BaseMessage]:
        """Convert client turns to LangChain messages, dropping empty ones."""
        messages: list[BaseMessage] = []
        for turn in turns:
            if not turn.content.strip():
                continue
            if turn.role == "user":
                messages.append(HumanMessage(content=turn.content))
            else:
                messages.append(AIMessage(content=turn.content))
        return messages

    def _process_stream_event(
        self, event: dict[str, Any], transcript: TurnTranscript
    ) -> StreamEvent | None:
        """Translate a LangGraph v2 event into a StreamEvent."""
        event_type = event.get("event", "")
        data = event.get("data", {})

        if event_type == "on_chat_model_stream":
            chunk = data.get("chunk")
            if isinstance(chunk, AIMessageChunk):
                text = _chunk_text(chunk.content)
                if text:
                    transcript.text_parts.append(text)
                    return StreamEvent(event="token", data=text)

        elif event_type == "on_chat_model_end":
            output = data.get("output")
            transcript.model_steps += 1
            transcript.pending_tool_calls = bool(
                isinstance(output, AIMessage) and output.tool_calls
            )

        elif event_type == "on_tool_start":
            tool_name = event.get("name", "unknown")
            tool_input = data.get("input", {})
            transcript.tool_invocations.append(
                {
                    "run_id": event.get("run_id"),
                    "tool_name": tool_name,
                    "args": tool_input,
                    "state": "call",
                }
            )
            return StreamEvent(
                event="tool_call",
                data=json.dumps({"name": tool_name, "input": tool_input}, default=str),
            )

        elif event_type == "on_tool_end":
            tool_name = event.get("name", "unknown")
            result = _parse_tool_output(data.get("output"))
            for invocation in transcript.tool_invocations:
                if invocation["run_id"] == event.get("run_id"):
                    invocation["state"] = "result"
                    invocation["result"] = result
            # A completed tool step means the model gets another turn.
            transcript.pending_tool_calls = False
            return StreamEvent(
                event="tool_result",
                data=json.dumps({"name": tool_name, "result": result}, default=str),
            )

        return None
