"""Type definitions for the agent event loop.

This module provides the conversation data model (messages, content blocks,
tool uses and results), the tool capability descriptors handed to model
providers, and the usage/metrics records accumulated across cycles.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any, Literal, Optional


Role = Literal["user", "assistant"]

StopReason = Literal[
    "end_turn",
    "tool_use",
    "max_tokens",
    "stop_sequence",
    "content_filtered",
    "guardrail_intervened",
]

ToolResultStatus = Literal["success", "error"]


@dataclass
class ToolUse:
    """A model-issued request to execute a named tool.

    Attributes:
        tool_use_id: Unique id of this invocation, echoed by its ToolResult
        name: Name of the tool to invoke
        input: Structured input for the tool. None means the input could not
            be resolved (e.g. the stream ended before the block was closed).
    """
    tool_use_id: str
    name: str
    input: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"tool_use_id": self.tool_use_id, "name": self.name, "input": self.input}


@dataclass
class ToolResult:
    """The outcome of executing one ToolUse.

    Attributes:
        tool_use_id: Id of the originating ToolUse
        status: "success" or "error"
        content: Ordered payloads, each a dict with exactly one of the keys
            "text", "json", "image" or "document"
    """
    tool_use_id: str
    status: ToolResultStatus
    content: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def error(cls, tool_use_id: str, text: str) -> "ToolResult":
        """Build an error result carrying a single text payload."""
        return cls(tool_use_id=tool_use_id, status="error", content=[{"text": text}])

    @classmethod
    def success(cls, tool_use_id: str, text: str) -> "ToolResult":
        """Build a success result carrying a single text payload."""
        return cls(tool_use_id=tool_use_id, status="success", content=[{"text": text}])

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    @property
    def text(self) -> str:
        """Concatenated text payloads."""
        return "".join(item["text"] for item in self.content if "text" in item)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool_use_id": self.tool_use_id,
            "status": self.status,
            "content": self.content,
        }


@dataclass
class ContentBlock:
    """One block of a message. Exactly one field is populated.

    ``text``, ``tool_use`` and ``tool_result`` are interpreted by the event
    loop. The remaining variants (media, reasoning, guard content and cache
    points) are carried opaquely and only inspected by the conversation
    manager, which treats guard content and cache points as protected.
    """
    text: Optional[str] = None
    tool_use: Optional[ToolUse] = None
    tool_result: Optional[ToolResult] = None
    image: Optional[dict[str, Any]] = None
    document: Optional[dict[str, Any]] = None
    reasoning: Optional[dict[str, Any]] = None
    guard_content: Optional[dict[str, Any]] = None
    cache_point: Optional[dict[str, Any]] = None

    def __post_init__(self) -> None:
        populated = [f.name for f in fields(self) if getattr(self, f.name) is not None]
        if len(populated) != 1:
            raise ValueError(
                f"ContentBlock requires exactly one populated field, got {populated or 'none'}"
            )

    @property
    def kind(self) -> str:
        """Name of the populated field."""
        for f in fields(self):
            if getattr(self, f.name) is not None:
                return f.name
        raise AssertionError("unreachable")  # pragma: no cover

    @property
    def is_protected(self) -> bool:
        return self.guard_content is not None or self.cache_point is not None

    def to_dict(self) -> dict[str, Any]:
        value = getattr(self, self.kind)
        if isinstance(value, (ToolUse, ToolResult)):
            value = value.to_dict()
        return {self.kind: value}


@dataclass
class Message:
    """A role-tagged, ordered bundle of content blocks (one conversation turn)."""
    role: Role
    content: list[ContentBlock] = field(default_factory=list)

    @classmethod
    def user_text(cls, text: str) -> "Message":
        return cls(role="user", content=[ContentBlock(text=text)])

    @classmethod
    def assistant_text(cls, text: str) -> "Message":
        return cls(role="assistant", content=[ContentBlock(text=text)])

    @property
    def text(self) -> str:
        return "".join(block.text for block in self.content if block.text is not None)

    @property
    def tool_uses(self) -> list[ToolUse]:
        return [block.tool_use for block in self.content if block.tool_use is not None]

    @property
    def tool_results(self) -> list[ToolResult]:
        return [block.tool_result for block in self.content if block.tool_result is not None]

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": [block.to_dict() for block in self.content]}


@dataclass
class ToolSpec:
    """Advertised description of a tool: unique name, description, input schema."""
    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass
class ToolConfig:
    """Capability descriptor handed to the model provider."""
    tools: list[ToolSpec] = field(default_factory=list)
    tool_choice: dict[str, Any] = field(default_factory=lambda: {"auto": {}})

    @property
    def tool_names(self) -> list[str]:
        return [spec.name for spec in self.tools]


@dataclass
class Usage:
    """Token usage reported for one model response."""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self) -> None:
        if not self.total_tokens:
            self.total_tokens = self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, int]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class StreamMetrics:
    """Provider-reported metrics for one model response."""
    latency_ms: float = 0.0


@dataclass
class CycleMetrics:
    """Totals accumulated over the lifetime of an agent.

    A single instance is owned by the Agent and mutated in place by every
    cycle, so values only ever grow.
    """
    cycles: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    total_latency_ms: float = 0.0
    tool_executions: int = 0

    def add_usage(self, usage: Usage) -> None:
        self.total_input_tokens += usage.input_tokens
        self.total_output_tokens += usage.output_tokens
        self.total_tokens += usage.total_tokens

    def add_latency(self, metrics: StreamMetrics) -> None:
        if metrics.latency_ms:
            self.total_latency_ms += metrics.latency_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycles": self.cycles,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_tokens,
            "total_latency_ms": self.total_latency_ms,
            "tool_executions": self.tool_executions,
        }


class RequestState(dict):
    """Caller-extensible state threaded through one top-level call.

    Tools receive it through their execution context and may set
    ``stop_event_loop`` to end the call without another model round-trip.
    """

    STOP_EVENT_LOOP = "stop_event_loop"

    @property
    def stop_event_loop(self) -> bool:
        return bool(self.get(self.STOP_EVENT_LOOP, False))

    @stop_event_loop.setter
    def stop_event_loop(self, value: bool) -> None:
        self[self.STOP_EVENT_LOOP] = value


@dataclass
class AgentResult:
    """Result returned from Agent.call().

    Attributes:
        stop_reason: Why the model stopped generating
        message: The final assistant message
        metrics: The agent's accumulated cycle metrics
        state: The request state of this call
    """
    stop_reason: str
    message: Message
    metrics: CycleMetrics
    state: RequestState

    @property
    def text(self) -> str:
        """Text content of the final message."""
        return self.message.text

    @property
    def tool_uses(self) -> list[ToolUse]:
        return self.message.tool_uses

    def to_dict(self) -> dict[str, Any]:
        return {
            "stop_reason": self.stop_reason,
            "message": self.message.to_dict(),
            "metrics": self.metrics.to_dict(),
            "state": dict(self.state),
        }

    def __str__(self) -> str:
        """Return a JSON-formatted representation with all fields."""
        return json.dumps(self.to_dict(), indent=2, default=str)
