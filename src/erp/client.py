"""
src/erp/client.py

HTTP client for the upstream ERP sales-order endpoint.

The endpoint is a paginated POST:
    request:  { ...filterParams, "limit": 500, "offset": n }
    response: { "data": [[ ...records ]] }   (first element of data is the page)

Any failure (network error, non-2xx, non-JSON body, unexpected shape) is logged and
reported as an empty page, so a flaky ERP never crashes the synchronizer.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class ErpClient:
    """
    Thin wrapper around a requests.Session carrying the bearer token and the tenant parameters
    (employee / preparer / location) that every sync payload embeds.
    """

    def __init__(
        self,
        *,
        api_url: str,
        token: Optional[str],
        empl_pk: str,
        prepared_by: str,
        location_pk: str,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url
        self.empl_pk = empl_pk
        self.prepared_by = prepared_by
        self.location_pk = location_pk
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    @classmethod
    def from_settings(cls, cfg) -> "ErpClient":
        return cls(
            api_url=cfg.erp_api_url,
            token=cfg.erp_token,
            empl_pk=cfg.empl_pk,
            prepared_by=cfg.prepared_by,
            location_pk=cfg.location_pk,
            timeout=cfg.erp_timeout_seconds,
        )

    def year_payload(self, year: int) -> Dict[str, Any]:
        """
        Query payload scoped to one calendar year (Jan 1 - Dec 31), without paging keys.
        """
        return {
            "empl_pk": self.empl_pk,
            "preparedBy": self.prepared_by,
            "viewAll": 1,
            "searchKey": "",
            "customerPK": None,
            "departmentPK": None,
            "filterDate": {
                "filter": "range",
                "date1": {"hide": False, "date": f"{year}-01-01"},
                "date2": {"hide": False, "date": f"{year}-12-31"},
            },
            "locationPK": self.location_pk,
            "salesRepPK": None,
            "status": "",
        }

    def fetch_page(self, payload: Dict[str, Any], *, limit: int, offset: int) -> List[Dict[str, Any]]:
        """
        Fetches one page. Returns [] on any failure.
        Individual rows are not validated here; the caller drops malformed ones after its page-length check.
        """
        body = {**payload, "limit": limit, "offset": offset}
        try:
            resp = self.session.post(self.api_url, json=body, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("ERP fetch failed (offset=%d): %s", offset, e)
            return []

        return self._extract_page(data)

    @staticmethod
    def _extract_page(data: Any) -> List[Dict[str, Any]]:
        """
        Pulls data[0] out of the response; anything malformed is treated as an empty page.
        """
        if not isinstance(data, dict):
            return []
        pages = data.get("data")
        if not isinstance(pages, list) or not pages:
            return []
        page = pages[0]
        if not isinstance(page, list):
            return []
        # Rows are returned as-is: the page length decides whether more pages follow
        return page
