"""The HTTP worker that serves the actions endpoints, and its configuration."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

import yaml

from bdindex import actions_metrics
from bdindex.actions_types import Context, GraphQLError, Payload, to_json_data

_LOG = logging.getLogger(__name__)

ActionHandler = Callable[[Context, Payload], Any]


@dataclass
class ActionsConfig:
    """Configuration of the actions worker."""

    port: int = 3000
    node: Mapping[str, Any] | None = None

    @classmethod
    def default(cls) -> ActionsConfig:
        return cls(port=3000, node=None)


def parse_config(data: str | bytes) -> ActionsConfig | None:
    """Read the ``actions`` section of a YAML document, or None if it has none."""
    try:
        document = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid configuration: {exc}") from exc
    if document is None:
        return None
    if not isinstance(document, dict):
        raise ValueError("invalid configuration: expected a mapping")
    section = document.get("actions")
    if section is None:
        return None
    if not isinstance(section, dict):
        raise ValueError("invalid configuration: actions must be a mapping")
    port = section.get("port", 0)
    if port is None:
        port = 0
    if isinstance(port, bool) or not isinstance(port, int) or port < 0:
        raise ValueError(f"invalid actions port: {port!r}")
    node = section.get("node")
    if node is not None and not isinstance(node, dict):
        raise ValueError("invalid configuration: actions node must be a mapping")
    return ActionsConfig(port=port, node=node)


def _dumps(value: Any) -> bytes:
    return json.dumps(to_json_data(value), separators=(",", ":"), ensure_ascii=False).encode()


class ActionsWorker:
    """Dispatches action requests to the registered handlers."""

    def __init__(self, context: Context) -> None:
        self.context = context
        self._handlers: dict[str, ActionHandler] = {}

    def register_handler(self, path: str, handler: ActionHandler) -> None:
        """Use ``handler`` for every request to ``path``."""
        _LOG.debug("registering actions handler %s", path)
        self._handlers[path] = handler

    def handle(self, path: str, body: str | bytes) -> tuple[int, bytes]:
        """Run the handler of ``path`` on a request body, returning status and response body."""
        start = time.monotonic()
        handler = self._handlers.get(path)
        if handler is None:
            return HTTPStatus.NOT_FOUND, b"404 page not found\n"

        try:
            payload = Payload.from_json(body)
        except ValueError:
            return HTTPStatus.INTERNAL_SERVER_ERROR, b"invalid payload: failed to unmarshal json\n"

        try:
            data = _dumps(handler(self.context, payload))
        except Exception as exc:
            actions_metrics.error_counter(path)
            return self._handle_error(path, exc)

        actions_metrics.success_counter(path)
        actions_metrics.response_time_buckets(path, start)
        return HTTPStatus.OK, data

    def _handle_error(self, path: str, error: Exception) -> tuple[int, bytes]:
        _LOG.error("error while executing action %s: %s", path, error)
        return HTTPStatus.BAD_REQUEST, _dumps(GraphQLError(message=str(error)))

    @staticmethod
    def _content_type(status: int) -> str:
        if status in (HTTPStatus.OK, HTTPStatus.BAD_REQUEST):
            return "application/json"
        return "text/plain; charset=utf-8"

    def _request_handler(self) -> type[BaseHTTPRequestHandler]:
        worker = self

        class _Handler(BaseHTTPRequestHandler):
            def _serve(self) -> None:
                try:
                    length = int(self.headers.get("Content-Length") or 0)
                    body = self.rfile.read(length) if length else b""
                except (OSError, ValueError):
                    status, data = HTTPStatus.BAD_REQUEST, b"invalid payload\n"
                    content_type = "text/plain; charset=utf-8"
                else:
                    status, data = worker.handle(urlsplit(self.path).path, body)
                    content_type = worker._content_type(status)
                self.send_response(int(status))
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                self.wfile.write(data)

            do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = _serve

            def log_message(self, format: str, *args: Any) -> None:
                _LOG.debug(format, *args)

        return _Handler

    def start(self, port: int) -> None:
        """Serve the registered handlers on every interface at ``port``, until interrupted."""
        with ThreadingHTTPServer(("", port), self._request_handler()) as server:
            server.serve_forever()