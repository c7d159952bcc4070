"""
storage_api_client.py

Copy this file into any service that needs to talk to the farm backend
(bots, sync jobs, dashboards).

What it provides:
- A tiny API client for this Farm Storage backend (JWT login + authenticated requests)
- Helpers for:
  - Storage totals and capacity: GET/PUT /inventory/storage
  - Drift correction: POST /inventory/storage/recalculate
  - Alerts (low stock + storage fill): GET /inventory/alerts
  - Inventory item CRUD, which books storage usage on the backend
  - Recording harvests, which books harvest volume on the backend

Environment variables expected:
- FARM_API_URL: e.g. "https://your-domain.com/api"
- FARM_API_EMAIL: the farm user's email (must exist in backend)
- FARM_API_PASSWORD: the farm user's password

Optional:
- FARM_API_TOKEN: if you want to pre-seed a token (otherwise we login)

Dependencies:
- requests (pip install requests)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class FarmStorageClient:
    base_url: str
    email: str
    password: str
    token: Optional[str] = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def login(self) -> str:
        """Exchange email/password for a JWT (form POST to /auth/jwt/login) and keep it on the client."""
        resp = requests.post(
            self._url("/auth/jwt/login"),
            data={"username": self.email, "password": self.password},
            headers={"Accept": "application/json"},
            timeout=30,
        )
        if resp.status_code >= 400:
            raise ApiError(f"Login failed ({resp.status_code}): {resp.text}", resp.status_code)
        data = resp.json()
        token = data.get("access_token")
        if not token:
            raise ApiError(f"Login response missing access_token: {data}")
        self.token = token
        return token

    def _request(self, method: str, path: str, *, json: Any = None, params: Dict[str, Any] | None = None) -> Any:
        if not self.token:
            self.login()

        url = self._url(path)

        def send() -> requests.Response:
            return requests.request(method, url, json=json, params=params, headers=self._headers(), timeout=60)

        resp = send()
        # Stale token: log in again and resend once
        if resp.status_code in (401, 403):
            self.login()
            resp = send()

        if resp.status_code >= 400:
            raise ApiError(f"{method} {path} failed ({resp.status_code}): {resp.text}", resp.status_code)

        if resp.status_code == 204:
            return None
        return resp.json()

    # ----------------------------
    # Storage helpers
    # ----------------------------

    def get_storage(self) -> Any:
        """Calls: GET /inventory/storage"""
        return self._request("GET", "/inventory/storage")

    def set_capacity(
        self,
        *,
        cold_capacity: Optional[float] = None,
        cold_used: Optional[float] = None,
        dry_capacity: Optional[float] = None,
        dry_used: Optional[float] = None,
    ) -> Any:
        """
        Calls: PUT /inventory/storage
        Only the fields you pass are sent; the backend leaves the rest unchanged.
        """
        payload = {
            "cold_capacity": cold_capacity,
            "cold_used": cold_used,
            "dry_capacity": dry_capacity,
            "dry_used": dry_used,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        return self._request("PUT", "/inventory/storage", json=payload)

    def recalculate(self) -> Any:
        """
        Calls: POST /inventory/storage/recalculate
        Replaces usage with the inventory-based sum (harvest volume is dropped).
        """
        return self._request("POST", "/inventory/storage/recalculate")

    def get_alerts(self) -> Any:
        """Calls: GET /inventory/alerts"""
        return self._request("GET", "/inventory/alerts")

    # ----------------------------
    # Inventory + harvest helpers
    # ----------------------------

    def create_inventory_item(
        self,
        *,
        name: str,
        category: str,  # e.g. "seeds" | "fertilizer" | "tools"
        quantity: float,
        unit: str,
        subcategory: Optional[str] = None,
        reorder_level: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> Any:
        """Calls: POST /inventory/items"""
        payload = {
            "name": name,
            "category": category,
            "subcategory": subcategory,
            "quantity": quantity,
            "unit": unit,
            "reorder_level": reorder_level,
            "notes": notes,
        }
        return self._request("POST", "/inventory/items", json=payload)

    def update_inventory_item(self, item_id: str, **fields: Any) -> Any:
        """
        Calls: PATCH /inventory/items/{item_id}
        Pass only the fields to change (quantity, name, unit, ...). Category is fixed.
        """
        return self._request("PATCH", f"/inventory/items/{item_id}", json=fields)

    def delete_inventory_item(self, item_id: str) -> Any:
        """Calls: DELETE /inventory/items/{item_id}"""
        return self._request("DELETE", f"/inventory/items/{item_id}")

    def record_harvest(
        self,
        *,
        crop_name: str,
        harvest_amount: float,
        harvest_unit: str,
        harvest_date: str,  # ISO datetime, e.g. "2024-06-01T08:00:00"
        yield_percentage: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> Any:
        """Calls: POST /harvests/"""
        payload = {
            "crop_name": crop_name,
            "harvest_amount": harvest_amount,
            "harvest_unit": harvest_unit,
            "harvest_date": harvest_date,
            "yield_percentage": yield_percentage,
            "notes": notes,
        }
        return self._request("POST", "/harvests/", json=payload)


def make_client_from_env() -> FarmStorageClient:
    base_url = os.getenv("FARM_API_URL", "").strip()
    email = os.getenv("FARM_API_EMAIL", "").strip()
    password = os.getenv("FARM_API_PASSWORD", "").strip()
    token = os.getenv("FARM_API_TOKEN", "").strip() or None

    if not base_url:
        raise RuntimeError("Missing FARM_API_URL")
    if not email:
        raise RuntimeError("Missing FARM_API_EMAIL")
    if not password:
        raise RuntimeError("Missing FARM_API_PASSWORD")

    return FarmStorageClient(base_url=base_url, email=email, password=password, token=token)


if __name__ == "__main__":
    client = make_client_from_env()

    storage = client.get_storage()
    print(
        f"Cold: {storage['cold_used']}/{storage['cold_capacity']} ({storage['cold_percentage']}%), "
        f"Dry: {storage['dry_used']}/{storage['dry_capacity']} ({storage['dry_percentage']}%)"
    )
    for alert in client.get_alerts()["storage_alerts"]:
        print(f"[{alert['severity']}] {alert['message']}")
