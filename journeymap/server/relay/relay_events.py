"""
Relay event payloads exchanged over Socket.IO.

All events are plain dicts so they can be emitted without Pydantic overhead.
``completion`` keeps the legacy wire shape (bare text) when the prompt arrived
as bare text; prompts sent as a ``PromptRequest`` get a ``CompletionReply``
that echoes the request id.
"""
from typing import Any, Dict, List, Optional, Tuple, TypedDict, Union

# Event names
NODE_PLACED = "nodePlaced"
INITIAL_PROMPT = "initialPrompt"
COMPLETION = "completion"
STRUCTURED_PROMPT = "structuredPrompt"
STRUCTURED_RESULT = "structuredResult"
GRID_UPDATED = "gridUpdated"
CONVERT_STORYBOARD = "convertStoryboard"
STORYBOARD_RESULT = "storyboardResult"


class NodePlacedEvent(TypedDict):
    nodeId: str
    row: int
    col: int
    nodeSubId: int
    color: str


class PromptRequest(TypedDict, total=False):
    prompt: str
    requestId: Optional[str]


class CompletionReply(TypedDict):
    text: str
    requestId: Optional[str]


class GridUpdatedEvent(TypedDict):
    reason: str
    nodeCount: int


class StoryboardReply(TypedDict, total=False):
    storyboards: List[Dict[str, Any]]
    error: str
    requestId: str


PromptPayload = Union[str, PromptRequest]
CompletionPayload = Union[str, CompletionReply]


def unpack_prompt(payload: Any) -> Tuple[str, Optional[str]]:
    """Return (prompt text, request id) from either prompt wire shape."""
    if isinstance(payload, dict):
        prompt = payload.get("prompt")
        request_id = payload.get("requestId")
        return ("" if prompt is None else str(prompt), None if request_id is None else str(request_id))
    return ("" if payload is None else str(payload), None)


def pack_completion(text: str, request_id: Optional[str]) -> CompletionPayload:
    if request_id is None:
        return text
    return CompletionReply(text=text, requestId=request_id)


def unpack_completion(payload: Any) -> Tuple[str, Optional[str]]:
    if isinstance(payload, dict):
        request_id = payload.get("requestId")
        return (str(payload.get("text", "")), None if request_id is None else str(request_id))
    return ("" if payload is None else str(payload), None)

