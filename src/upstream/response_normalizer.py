# src/upstream/response_normalizer.py

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

PathStep = Union[str, int]

FALLBACK_STRATEGY = "raw_json"


@dataclass(frozen=True)
class ReplyStrategy:
    """One known upstream shape: a name and the path to its reply text."""

    name: str
    path: Tuple[PathStep, ...]

    def extract(self, payload: Any) -> Any:
        node = payload
        for step in self.path:
            if isinstance(step, int):
                if not isinstance(node, list) or not -len(node) <= step < len(node):
                    return None
                node = node[step]
            else:
                if not isinstance(node, dict) or step not in node:
                    return None
                node = node[step]
        return node


# Evaluated in order; the first truthy value wins.
REPLY_STRATEGIES: Tuple[ReplyStrategy, ...] = (
    # Watson Assistant / agent service
    ReplyStrategy("watson_assistant", ("output", "generic", 0, "text")),
    # watsonx text generation
    ReplyStrategy("text_generation", ("results", 0, "generated_text")),
    # OpenAI-style chat completion
    ReplyStrategy("chat_completion", ("choices", 0, "message", "content")),
)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def normalize_with_strategy(
    payload: Any,
    strategies: Tuple[ReplyStrategy, ...] = REPLY_STRATEGIES,
) -> Tuple[str, str]:
    """
    Map an upstream reply to (reply_text, strategy_name).

    Never raises: a payload matching none of the strategies comes back as
    pretty-printed JSON under the "raw_json" strategy name.
    """
    for strategy in strategies:
        value: Optional[Any] = strategy.extract(payload)
        if value:
            return _as_text(value), strategy.name

    return json.dumps(payload, indent=2, ensure_ascii=False), FALLBACK_STRATEGY


def normalize(payload: Any) -> str:
    reply, _ = normalize_with_strategy(payload)
    return reply
