"""FastAPI dependencies."""

from fastapi import Request

from gateway.service import IntegrationGateway


def get_gateway(request: Request) -> IntegrationGateway:
    """The gateway built at startup and kept on app.state."""
    return request.app.state.gateway
