# ledger_core/common/events.py
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

from django.db import transaction

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], None]

_registry: Dict[str, List[Handler]] = defaultdict(list)


def subscribe(event_name: str):
    """
    Decorator to register an event handler.
    Usage:
        @subscribe("invoice.issued")
        def handler(payload): ...
    """
    def _decorator(fn: Handler) -> Handler:
        if fn not in _registry[event_name]:
            _registry[event_name].append(fn)
        return fn
    return _decorator


def handlers_for(event_name: str) -> List[Handler]:
    return list(_registry.get(event_name, []))


def publish(event_name: str, payload: Dict[str, Any]) -> None:
    """
    Deliver an event to in-process subscribers right now.
    Keep payloads ID-based to avoid cross-app imports.

    A failing handler is logged and skipped; the remaining handlers still run.
    """
    for handler in handlers_for(event_name):
        try:
            handler(payload)
        except Exception:
            logger.exception("event handler %s failed for %s", getattr(handler, "__name__", handler), event_name)


def publish_on_commit(event_name: str, payload: Dict[str, Any]) -> None:
    """
    Defer delivery until the surrounding transaction commits.
    If the transaction rolls back, subscribers never see the event.
    """
    transaction.on_commit(lambda: publish(event_name, payload))
