"""Outbound adapters to the LogicMate (inventory/invoicing) and Suntec
(factory floor) ERP systems, and the facade that combines them.

Both systems speak plain JSON over HTTP through ``httpx.AsyncClient``. Any
transport error, timeout or non-2xx answer becomes ``UpstreamFailure`` so a
dead ERP never looks like an empty result.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from .config import Settings
from .errors import UpstreamFailure
from .models import OrderStatus
from .utils import utcnow

logger = logging.getLogger(__name__)

LOGICMATE = "logicMate"
SUNTEC = "suntec"


class ERPAdapter(Protocol):
    name: str

    async def fetch_data(self, endpoint: str) -> Any:
        ...

    async def push_data(self, endpoint: str, payload: Dict[str, Any]) -> bool:
        ...


class HttpERPAdapter:
    """One ERP system reached over JSON/HTTP.

    LogicMate (inventory, invoicing) and Suntec (factory floor) speak the same
    protocol; only the name, base URL and API key differ.
    """

    def __init__(self, name: str, base_url: str, api_key: str, timeout: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.name = name
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def _call(self, method: str, endpoint: str,
                    payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}", "Accept": "application/json"}
        logger.info("[%s] %s %s%s", self.name, method, self.base_url, endpoint)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, headers=headers, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.request(method, endpoint, json=payload)
                response.raise_for_status()
                return response
        except httpx.TimeoutException as e:
            logger.error("[%s] %s %s timed out after %ss", self.name, method, endpoint, self.timeout)
            raise UpstreamFailure(f"{self.name} ERP timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error("[%s] %s %s returned %s", self.name, method, endpoint, e.response.status_code)
            raise UpstreamFailure(f"{self.name} ERP returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("[%s] %s %s failed: %s", self.name, method, endpoint, e)
            raise UpstreamFailure(f"Failed to connect to {self.name} ERP") from e

    async def fetch_data(self, endpoint: str) -> Any:
        response = await self._call("GET", endpoint)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFailure(f"{self.name} ERP sent an unreadable response") from e

    async def push_data(self, endpoint: str, payload: Dict[str, Any]) -> bool:
        await self._call("POST", endpoint, payload)
        return True


def merge_status(*statuses: Optional[str]) -> Optional[str]:
    """Pick one status when several systems report one.

    ``delivered`` wins over everything, ``manufacturing`` over anything but
    ``delivered``; otherwise the first non-empty value in argument order.
    """
    present = [s for s in statuses if s]
    if OrderStatus.DELIVERED.value in present:
        return OrderStatus.DELIVERED.value
    if OrderStatus.MANUFACTURING.value in present:
        return OrderStatus.MANUFACTURING.value
    return present[0] if present else None


def _status_of(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        value = payload.get("status")
        return value if isinstance(value, str) else None
    return None


class ERPService:
    def __init__(self, logicmate: ERPAdapter, suntec: ERPAdapter):
        self.logicmate = logicmate
        self.suntec = suntec

    async def logicmate_orders(self) -> Any:
        return await self.logicmate.fetch_data("/orders")

    async def suntec_factory_status(self) -> Any:
        return await self.suntec.fetch_data("/factory/status")

    async def update_inventory(self, product_id: str, quantity: int) -> bool:
        return await self.logicmate.push_data(
            "/inventory/update", {"productId": product_id, "quantity": quantity}
        )

    async def update_factory_status(self, order_id: str, status: str) -> bool:
        return await self.suntec.push_data("/orders/status", {"orderId": order_id, "status": status})

    async def _fan_out(self, calls: Dict[str, Any]) -> tuple[Dict[str, Any], Dict[str, str]]:
        keys = list(calls)
        results = await asyncio.gather(*calls.values(), return_exceptions=True)
        data: Dict[str, Any] = {}
        errors: Dict[str, str] = {}
        for key, result in zip(keys, results):
            if isinstance(result, UpstreamFailure):
                errors[key] = result.detail
            elif isinstance(result, Exception):
                raise result
            else:
                data[key] = result
        return data, errors

    async def sync_all(self) -> Dict[str, Any]:
        data, errors = await self._fan_out(
            {LOGICMATE: self.logicmate_orders(), SUNTEC: self.suntec_factory_status()}
        )
        if not data:
            raise UpstreamFailure("ERP sync failed")
        if errors:
            logger.warning("partial ERP sync, failed systems: %s", ", ".join(sorted(errors)))
        return {
            "success": not errors,
            "partial": bool(errors),
            "timestamp": utcnow().isoformat(),
            "data": data,
            "errors": errors,
        }

    async def order_details(self, order_id: str) -> Dict[str, Any]:
        endpoint = f"/orders/{order_id}"
        data, errors = await self._fan_out(
            {LOGICMATE: self.logicmate.fetch_data(endpoint), SUNTEC: self.suntec.fetch_data(endpoint)}
        )
        if not data:
            raise UpstreamFailure("Failed to fetch ERP order details")
        return {
            "orderId": order_id,
            LOGICMATE: data.get(LOGICMATE),
            SUNTEC: data.get(SUNTEC),
            "status": merge_status(_status_of(data.get(LOGICMATE)), _status_of(data.get(SUNTEC))),
            "partial": bool(errors),
            "errors": errors,
        }


# -------------------- demo transport --------------------

def _logicmate_demo(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if request.method == "POST":
        return httpx.Response(200, json={"ok": True})
    if path.startswith("/orders/"):
        return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1], "status": "processing", "invoiced": True})
    if path == "/orders":
        return httpx.Response(200, json={"orders": [
            {"id": "LM001", "status": "processing", "customer": "Acme Inc"},
            {"id": "LM002", "status": "shipped", "customer": "TechCorp"},
        ]})
    return httpx.Response(200, json={"message": "No data available for this endpoint"})


def _suntec_demo(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if request.method == "POST":
        return httpx.Response(200, json={"ok": True})
    if path.startswith("/orders/"):
        return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1], "status": "manufacturing", "line": "L2"})
    if path == "/factory/status":
        return httpx.Response(200, json={"lines": [
            {"line": "L1", "state": "running", "queue": 4},
            {"line": "L2", "state": "maintenance", "queue": 0},
        ]})
    if path == "/inventory":
        return httpx.Response(200, json={"inventory": [
            {"sku": "ST001", "quantity": 150, "location": "Warehouse A"},
            {"sku": "ST002", "quantity": 75, "location": "Warehouse B"},
        ]})
    return httpx.Response(200, json={"message": "No data available for this endpoint"})


def build_erp_service(settings: Settings) -> ERPService:
    logicmate_transport = httpx.MockTransport(_logicmate_demo) if settings.erp_mock else None
    suntec_transport = httpx.MockTransport(_suntec_demo) if settings.erp_mock else None
    return ERPService(
        logicmate=HttpERPAdapter("LogicMate", settings.logicmate_url, settings.logicmate_api_key,
                                 settings.erp_timeout_seconds, logicmate_transport),
        suntec=HttpERPAdapter("Suntec", settings.suntec_url, settings.suntec_api_key,
                              settings.erp_timeout_seconds, suntec_transport),
    )
