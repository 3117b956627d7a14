"""
Feeds a requests.Session's outbound traffic into an AnomalyDetectionEngine.

The host opts in per session; nothing global is patched. Completed calls are
reported from a response hook. Calls that fail in transport (refused
connections, timeouts) never reach the hooks, so the session's send is wrapped
to report them before the error propagates.
"""

import functools
import logging
from typing import Optional

import requests

from egress_sentinel.core.descriptor import RequestDescriptor
from egress_sentinel.services.detection_service import AnomalyDetectionEngine

logger = logging.getLogger(__name__)


def descriptor_from_request(request: requests.PreparedRequest) -> RequestDescriptor:
    body = request.body
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    elif body is not None and not isinstance(body, str):
        # streamed/file bodies are not read
        body = None
    return RequestDescriptor(
        url=request.url or "",
        method=request.method,
        headers=dict(request.headers or {}),
        body=body,
    )


def _report(engine: AnomalyDetectionEngine, request: requests.PreparedRequest) -> None:
    try:
        engine.ingest(descriptor_from_request(request))
    except Exception:
        logger.warning("Could not analyze outbound request", exc_info=True)


def make_response_hook(engine: AnomalyDetectionEngine):
    def _hook(response: requests.Response, *args, **kwargs) -> Optional[requests.Response]:
        _report(engine, response.request)
        return response

    return _hook


def make_failure_reporting_send(send, engine: AnomalyDetectionEngine):
    @functools.wraps(send)
    def _send(request: requests.PreparedRequest, **kwargs) -> requests.Response:
        try:
            return send(request, **kwargs)
        except requests.RequestException as exc:
            # redirects re-enter send; report the failing hop once
            if not getattr(exc, "_egress_reported", False):
                exc._egress_reported = True
                _report(engine, request)
            raise

    return _send


def attach_to_session(session: requests.Session, engine: AnomalyDetectionEngine) -> requests.Session:
    session.hooks.setdefault("response", []).append(make_response_hook(engine))
    session.send = make_failure_reporting_send(session.send, engine)
    return session
