"""Depot API client module.

Usage:
    from depot_client.api import ApiClient, DepotAPI

    async with ApiClient(settings, token_store) as api:
        controller = SessionController(api)
        await controller.hydrate()

        depot = DepotAPI(api, controller)
        products = await depot.products()
"""

from .client import (
    ApiClient,
    ApiError,
    ApiAuthError,
    ApiServerError,
    ApiNetworkError,
    ApiResponseError,
    LocationNavigator,
    Navigator,
)
from .resources import DepotAPI, NotAuthenticatedError

__all__ = [
    "ApiClient",
    "ApiError",
    "ApiAuthError",
    "ApiServerError",
    "ApiNetworkError",
    "ApiResponseError",
    "LocationNavigator",
    "Navigator",
    "DepotAPI",
    "NotAuthenticatedError",
]
