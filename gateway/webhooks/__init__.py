"""
Gateway Webhooks — inbound side of the gateway.

- EventHandlerRegistry: (platform, event type) → handlers
- WebhookPipeline: identify → verify → route → persist → acknowledge
- WebhookEventStore: in-memory and SQL persistence
- handlers: built-in GitHub, GitLab, internal and builder-platform handlers
"""
