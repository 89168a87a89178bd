"""
Request body parsers for the tutorial backend.

JSON and URL-encoded bodies are parsed before routing and exposed on
``request.state.body``. Malformed or oversized bodies are answered
here and never reach a route handler.

File: backend/app/core/body_parsing.py
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Tuple, Union
from urllib.parse import parse_qsl

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .exception_handlers import build_error_response
from .exceptions import MalformedBodyError, PayloadTooLargeError, TutorialServerError

logger = logging.getLogger(__name__)

DEFAULT_BODY_LIMIT = 100 * 1024
DEFAULT_PARAMETER_LIMIT = 1000
DEFAULT_NESTING_DEPTH = 5
ARRAY_INDEX_LIMIT = 20

_KEY_SEGMENT = re.compile(r"\[([^\[\]]*)\]")
_BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class _BodyParserMiddleware:
    """
    Base class for ASGI body parsers.

    Reads the full body of matching requests, stores the parsed value in
    the request state and replays the raw bytes to the downstream app.
    """

    def __init__(self, app: ASGIApp, limit: int = DEFAULT_BODY_LIMIT) -> None:
        self.app = app
        self.limit = limit

    def matches(self, content_type: str) -> bool:
        raise NotImplementedError

    def parse(self, raw: bytes) -> Any:
        raise NotImplementedError

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        state.setdefault("body", {})

        headers = Headers(scope=scope)
        content_type = headers.get("content-type", "").split(";")[0].strip().lower()
        if scope["method"] not in _BODY_METHODS or not self.matches(content_type):
            await self.app(scope, receive, send)
            return

        try:
            raw = await self._read_body(headers, receive)
            if raw:
                state["body"] = self.parse(raw)
        except TutorialServerError as exc:
            logger.info(
                f"Rejected {scope['method']} {scope['path']}: {exc.message}",
                extra={"extra_data": {"error_code": exc.error_code}},
            )
            response = build_error_response(exc)
            await response(scope, receive, send)
            return

        await self.app(scope, _replay(raw, receive), send)

    async def _read_body(self, headers: Headers, receive: Receive) -> bytes:
        declared = headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.limit:
            raise PayloadTooLargeError(
                "request entity too large",
                details={"limit": self.limit, "length": int(declared)},
            )

        chunks: List[bytes] = []
        received = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.limit:
                raise PayloadTooLargeError(
                    "request entity too large", details={"limit": self.limit}
                )
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        return b"".join(chunks)


def _replay(raw: bytes, receive: Receive) -> Receive:
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": raw, "more_body": False}
        return await receive()

    return replay


class JSONBodyParser(_BodyParserMiddleware):
    """
    Parses ``application/json`` bodies.

    Only objects and arrays are accepted at the top level; anything else,
    including invalid UTF-8, is a 400.
    """

    def matches(self, content_type: str) -> bool:
        return content_type == "application/json" or content_type.endswith("+json")

    def parse(self, raw: bytes) -> Any:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedBodyError("request body is not valid UTF-8") from exc

        stripped = text.lstrip()
        if not stripped:
            return {}
        if stripped[0] not in "{[":
            raise MalformedBodyError(
                "request body must be a JSON object or array",
                details={"position": len(text) - len(stripped)},
            )

        try:
            return json.loads(text, parse_constant=_reject_constant)
        except json.JSONDecodeError as exc:
            raise MalformedBodyError(
                f"malformed JSON: {exc.msg}",
                details={"line": exc.lineno, "column": exc.colno},
            ) from exc
        except RecursionError as exc:
            raise MalformedBodyError("malformed JSON: nesting too deep") from exc


def _reject_constant(name: str) -> Any:
    raise MalformedBodyError(f"malformed JSON: unexpected token {name}")


class URLEncodedBodyParser(_BodyParserMiddleware):
    """Parses ``application/x-www-form-urlencoded`` bodies."""

    def __init__(
        self,
        app: ASGIApp,
        limit: int = DEFAULT_BODY_LIMIT,
        extended: bool = True,
        parameter_limit: int = DEFAULT_PARAMETER_LIMIT,
        depth: int = DEFAULT_NESTING_DEPTH,
    ) -> None:
        super().__init__(app, limit=limit)
        self.extended = extended
        self.parameter_limit = parameter_limit
        self.depth = depth

    def matches(self, content_type: str) -> bool:
        return content_type == "application/x-www-form-urlencoded"

    def parse(self, raw: bytes) -> Dict[str, Any]:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedBodyError("request body is not valid UTF-8") from exc

        pairs = parse_qsl(text, keep_blank_values=True)
        if len(pairs) > self.parameter_limit:
            raise PayloadTooLargeError(
                "too many parameters", details={"limit": self.parameter_limit}
            )

        if not self.extended:
            flat: Dict[str, Any] = {}
            for key, value in pairs:
                _assign(flat, [key], value)
            return flat
        return parse_nested_pairs(pairs, depth=self.depth)


def split_key(key: str, depth: int = DEFAULT_NESTING_DEPTH) -> List[str]:
    """
    Split ``a[b][c]`` into ``["a", "b", "c"]``.

    Segments past ``depth`` are kept together as one literal key, and a
    key that does not start with a plain name is not split at all.
    """
    bracket = key.find("[")
    if bracket <= 0:
        return [key]

    segments = [key[:bracket]]
    position = bracket
    while len(segments) <= depth:
        match = _KEY_SEGMENT.match(key, position)
        if match is None:
            break
        segments.append(match.group(1))
        position = match.end()

    if len(segments) == 1:
        return [key]
    if position < len(key):
        segments.append(key[position:])
    return segments


def parse_nested_pairs(
    pairs: List[Tuple[str, str]], depth: int = DEFAULT_NESTING_DEPTH
) -> Dict[str, Any]:
    """
    Build nested objects from decoded form pairs.

    >>> parse_nested_pairs([("user[name]", "ada"), ("tags[]", "a"), ("tags[]", "b")])
    {'user': {'name': 'ada'}, 'tags': ['a', 'b']}
    """
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if not key:
            continue
        _assign(result, split_key(key, depth), value)
    return {key: _compact(value) for key, value in result.items()}


def _assign(target: Union[Dict[str, Any], List[Any]], path: List[str], value: str) -> None:
    head, rest = path[0], path[1:]

    if not rest:
        if isinstance(target, list):
            target.append(value)
        elif head in target:
            existing = target[head]
            if isinstance(existing, list):
                existing.append(value)
            elif isinstance(existing, dict):
                existing[str(len(existing))] = value
            else:
                target[head] = [existing, value]
        else:
            target[head] = value
        return

    wants_list = rest[0] == ""
    if isinstance(target, list):
        child: Union[Dict[str, Any], List[Any]] = [] if wants_list else {}
        target.append(child)
    else:
        child = target.get(head)
        if isinstance(child, list) and not wants_list:
            child = {str(index): item for index, item in enumerate(child)}
            target[head] = child
        elif not isinstance(child, (dict, list)):
            if child is None:
                child = [] if wants_list else {}
            else:
                child = [child] if wants_list else {"0": child}
            target[head] = child

    _assign(child, rest, value)


def _compact(node: Any) -> Any:
    """Turn objects keyed only by small integers into ordered lists."""
    if isinstance(node, list):
        return [_compact(item) for item in node]
    if not isinstance(node, dict):
        return node

    compacted = {key: _compact(value) for key, value in node.items()}
    if compacted and all(
        key.isdigit() and int(key) <= ARRAY_INDEX_LIMIT for key in compacted
    ):
        return [compacted[key] for key in sorted(compacted, key=int)]
    return compacted


__all__ = [
    "JSONBodyParser",
    "URLEncodedBodyParser",
    "parse_nested_pairs",
    "split_key",
]
