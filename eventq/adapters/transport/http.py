"""
HttpTransport — deliver queued items to an HTTP endpoint with httpx.

Each item is POSTed as a JSON body. Headers default to
Accept/Content-Type: application/json and are merged with the endpoint's
own headers, whose values may be strings, booleans, or callables of the
delivery context (for tokens derived from application state).

A 2xx response is a successful delivery. Timeouts, network errors and
non-2xx responses are logged and reported as False so the drain loop can
re-enqueue the item.
"""

from __future__ import annotations

import dataclasses
from typing import Any

import httpx

from eventq.domain.errors import DeliveryError
from eventq.domain.models import Endpoint
from eventq.log import get_logger

logger = get_logger(__name__)


@dataclasses.dataclass
class HttpTransport:
    """
    Parameters
    ----------
    endpoint : where and how to send items
    client   : shared httpx.AsyncClient; a short-lived client is opened per
               delivery when omitted
    """

    endpoint: Endpoint
    client: httpx.AsyncClient | None = None

    async def deliver(self, item: Any, context: Any = None) -> bool:
        """POST `item` to the endpoint. Returns True on a 2xx response."""
        try:
            await self.send(item, context)
            return True
        except httpx.TimeoutException:
            logger.warning("Delivery timeout", uri=self.endpoint.uri)
            return False
        except DeliveryError as exc:
            logger.warning(
                "Delivery rejected",
                uri=self.endpoint.uri,
                status_code=exc.status_code,
                error=str(exc),
            )
            return False
        except httpx.HTTPError as exc:
            logger.warning(
                "Delivery network error",
                uri=self.endpoint.uri,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False

    async def send(self, item: Any, context: Any = None) -> httpx.Response:
        """
        POST `item` and return the response.

        Raises DeliveryError on a non-2xx status; httpx errors propagate.
        """
        body = self.endpoint.transform(item) if self.endpoint.transform else item
        headers = self.endpoint.render_headers(context)
        timeout = httpx.Timeout(self.endpoint.timeout.total_seconds())

        if self.client is not None:
            response = await self.client.post(
                self.endpoint.uri, json=body, headers=headers, timeout=timeout
            )
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(
                    self.endpoint.uri, json=body, headers=headers
                )

        if not response.is_success:
            raise DeliveryError(
                f"Endpoint answered {response.status_code}",
                status_code=response.status_code,
            )
        logger.debug(
            "Item delivered",
            uri=self.endpoint.uri,
            status_code=response.status_code,
        )
        return response
