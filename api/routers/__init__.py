"""API routers — webhooks (inbound) and integrations (outbound)."""
