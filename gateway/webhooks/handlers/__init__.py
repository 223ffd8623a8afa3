"""
Built-in webhook handlers.

register_default_handlers() wires every handler into an
EventHandlerRegistry, bound to one HostApplication.
"""
from __future__ import annotations
from functools import partial

from gateway.integrations.registry import CODE_HOSTS, INTERNAL_SOURCE, PlatformRegistry
from gateway.webhooks.handler_registry import EventHandlerRegistry
from gateway.webhooks.handlers import github, gitlab, internal
from gateway.webhooks.handlers.host import HostApplication
from gateway.webhooks.handlers.platforms import handle_platform_event


def register_default_handlers(
    handlers: EventHandlerRegistry,
    registry: PlatformRegistry,
    host: HostApplication,
) -> None:
    for event_type, handler in github.HANDLERS.items():
        handlers.register("github", event_type, partial(handler, host=host))
    for event_type, handler in gitlab.HANDLERS.items():
        handlers.register("gitlab", event_type, partial(handler, host=host))
    for event_type, handler in internal.HANDLERS.items():
        handlers.register(INTERNAL_SOURCE, event_type, partial(handler, host=host))

    for config in registry:
        if config.platform_id in CODE_HOSTS:
            continue
        for event_type in sorted(config.webhook_events):
            handlers.register(config.platform_id, event_type, partial(handle_platform_event, host=host))


__all__ = ["HostApplication", "register_default_handlers"]
