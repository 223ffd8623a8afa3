"""Integration Gateway — connects a host application to external code hosts
and app-builder platforms.

Outbound: credentials, OAuth, sync / export / deploy / webhook registration.
Inbound: signed webhooks, verified, routed to handlers and persisted.
"""
