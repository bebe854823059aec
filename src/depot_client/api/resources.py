"""Tenant-scoped read helpers for the depot backend.

Every business endpoint is keyed by the signed-in user's tenant. The tenant
is taken from the cached profile, never passed in by callers.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .client import ApiClient
    from ..auth.manager import SessionController


class NotAuthenticatedError(Exception):
    """Raised when a tenant-scoped call is made without a signed-in user."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Not signed in. Run 'depot auth login' first.")


def _page_params(
    page: int, limit: int, search: str | None, status: str | None
) -> dict[str, Any]:
    """Query for paginated lists; blank search and the "ALL" status are left out."""
    params: dict[str, Any] = {"page": page, "limit": limit}
    if search and search.strip():
        params["search"] = search.strip()
    if status and status != "ALL":
        params["status"] = status
    return params


class DepotAPI:
    """Depot business endpoints.

    Usage:
        depot = DepotAPI(api, controller)

        products = await depot.products()
        low = await depot.products(low_stock=True)
        page = await depot.deliveries(page=2, status="PENDING")
        await depot.record_credit_payment("sale_1", 2500)
    """

    def __init__(self, client: "ApiClient", controller: "SessionController"):
        self._client = client
        self._controller = controller

    @property
    def _tenant_id(self) -> str:
        user = self._controller.user
        if user is None or not user.tenant_id:
            raise NotAuthenticatedError()
        return user.tenant_id

    async def products(self, low_stock: bool = False) -> Any:
        """List the tenant's products, or only those under their critical threshold."""
        if low_stock:
            return await self._client.get(f"/product/lower/{self._tenant_id}")
        return await self._client.get(f"/product/tenant/{self._tenant_id}")

    async def deliveries(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        """One page of deliveries.

        Returns:
            {"data": [...], "totalPage": ..., "total": ...}
        """
        params = _page_params(page, limit, search, status)
        return await self._client.get(f"/delivery/paginate/{self._tenant_id}", **params)

    async def orders(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        """One page of customer orders, filtered like deliveries."""
        params = _page_params(page, limit, search, status)
        return await self._client.get(f"/order/paginate/{self._tenant_id}", **params)

    async def order(self, order_id: str) -> dict[str, Any]:
        return await self._client.get(f"/order/{order_id}")

    async def customers(self, page: int = 1, limit: int = 10) -> dict[str, Any]:
        """One page of customers.

        Returns:
            {"data": [...], "totalPages": ..., "currentPage": ..., "totalItems": ...}
        """
        return await self._client.get(
            f"/customer/paginate/{self._tenant_id}", page=page, limit=limit
        )

    async def suppliers(self) -> Any:
        return await self._client.get(f"/supplier/{self._tenant_id}")

    async def delivery_persons(self) -> Any:
        return await self._client.get(f"/deliveryPerson/{self._tenant_id}")

    async def direct_sales(self, page: int = 1, limit: int = 50) -> dict[str, Any]:
        return await self._client.get(
            f"/directeSale/paginate/tenant/{self._tenant_id}", page=page, limit=limit
        )

    async def credit_sales(self) -> Any:
        """Direct sales still carrying a due amount."""
        return await self._client.get(f"/directeSale/credit/{self._tenant_id}")

    async def dashboard(self) -> dict[str, Any]:
        """Headline figures: totalSales, totalDeliveries, totalRevenue, ..."""
        return await self._client.get(f"/dashbord/{self._tenant_id}")

    async def record_credit_payment(self, sale_id: str, amount: float) -> dict[str, Any]:
        """Record a payment against a credit sale."""
        if amount <= 0:
            raise ValueError("Payment amount must be positive")
        return await self._client.post(
            "/creditPayment",
            {"directSaleId": sale_id, "amount": amount},
        )
