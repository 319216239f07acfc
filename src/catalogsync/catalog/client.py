"""
Remote catalog client for the Shopify Admin REST API.

Fetches product listings page by page. A failure on any page aborts the
whole fetch, since later pages cannot be trusted once one is missing.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import ShopifyConfig
from ..exceptions import RemoteRejection, TransportError

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = (
    "id,title,body_html,vendor,product_type,tags,variants,images,created_at,updated_at"
)


class CatalogClient:
    """Async client for paginated product listings."""

    def __init__(
        self,
        config: ShopifyConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not config.has_credentials:
            raise TransportError("Shopify credentials not configured")

        self.config = config
        self.page_size = config.page_size
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)

    @property
    def base_url(self) -> str:
        return (
            f"https://{self.config.store_name}.myshopify.com"
            f"/admin/api/{self.config.api_version}"
        )

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.config.access_token,
            "Content-Type": "application/json",
        }

    async def fetch_page(self, page_size: int, page_number: int) -> List[Dict[str, Any]]:
        """Fetch one page of products.

        Raises:
            TransportError: network, timeout or authentication failure.
            RemoteRejection: any other non-2xx response, including 429 after
                retries are exhausted.
        """
        params = {"limit": page_size, "page": page_number, "fields": PRODUCT_FIELDS}
        url = f"{self.base_url}/products.json"

        attempt = 0
        while True:
            try:
                response = await self._http.get(url, headers=self.headers, params=params)
            except httpx.HTTPError as e:
                raise TransportError(f"Failed to reach Shopify: {e}") from e

            if response.status_code == 429 and attempt < self.config.retry_max:
                delay = self._retry_delay(response, attempt)
                logger.warning(
                    f"Shopify rate limited on page {page_number}, retrying in {delay:.1f}s"
                )
                attempt += 1
                await asyncio.sleep(delay)
                continue
            break

        if response.status_code in (401, 403):
            raise TransportError(
                f"Shopify authentication failed: {response.status_code}"
            )
        if response.status_code >= 300:
            body = (response.text or "")[:500]
            raise RemoteRejection(
                f"Shopify products page {page_number}: {response.status_code} {body}",
                status_code=response.status_code,
            )

        try:
            products = response.json().get("products") or []
        except ValueError as e:
            raise RemoteRejection(
                f"Shopify returned invalid JSON for page {page_number}",
                status_code=response.status_code,
            ) from e

        logger.debug(f"Fetched page {page_number}: {len(products)} products")
        return products

    async def fetch_all(self) -> List[Dict[str, Any]]:
        """Fetch every product, stopping at the first empty page."""
        all_products: List[Dict[str, Any]] = []
        page = 1

        while True:
            products = await self.fetch_page(self.page_size, page)
            if not products:
                break
            all_products.extend(products)
            page += 1

        logger.info(f"Fetched {len(all_products)} products in {page} page requests")
        return all_products

    def _retry_delay(self, response: httpx.Response, attempt: int) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                pass
        return self.config.retry_base_delay * (2**attempt)

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
