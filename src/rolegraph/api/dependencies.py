"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from rolegraph.core.services import Services


def get_services(request: Request) -> Services:
    """Return the service container the application was started with."""
    return request.app.state.services


# Type alias for service container dependency
ServicesDep = Annotated[Services, Depends(get_services)]
