from __future__ import annotations

import logging
from typing import Any

import requests

from applemonitor.alerts import NotificationDispatcher
from applemonitor.countries import resolve_base_url
from applemonitor.models import DeviceItem, PickupDisplay, StoreAvailability, TaskConfig
from applemonitor.schedule import recommended_cron

LOG = logging.getLogger(__name__)

FULFILLMENT_PATH = "/shop/fulfillment-messages"
REFERER_PATH = "/shop/buy-iphone/iphone-14-pro"


def store_matches(store_name: str, allow_list: list[str]) -> bool:
    return any(entry in store_name or store_name in entry for entry in allow_list)


def filter_stores(stores: list[dict[str, Any]], allow_list: list[str] | None) -> list[dict[str, Any]]:
    if not allow_list:
        return list(stores)
    return [store for store in stores if store_matches(store.get("storeName") or "", allow_list)]


def parse_store(store: dict[str, Any], device_code: str) -> StoreAvailability:
    part = store["partsAvailability"][device_code]
    retail_store = store.get("retailStore") or {}
    address = retail_store.get("address") or {}
    raw_display = part.get("pickupDisplay")

    return StoreAvailability(
        store_name=(store.get("storeName") or "").strip(),
        product_title=part["messageTypes"]["regular"]["storePickupProductTitle"],
        status_text=part.get("pickupSearchQuote") or "",
        pickup_display=PickupDisplay.from_raw(raw_display),
        raw_pickup_display=raw_display,
        address=(address.get("twoLineAddress") or "").replace("\n", " "),
        phone=address.get("daytimePhone") or "",
        distance_with_unit=retail_store.get("distanceWithUnit") or "",
    )


class InventoryPoller:
    def __init__(
        self,
        task: TaskConfig,
        dispatcher: NotificationDispatcher,
        session: requests.Session | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.task = task
        self.dispatcher = dispatcher
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds

    def build_request(self, device: DeviceItem) -> tuple[str, dict[str, str], dict[str, str]]:
        base_url = resolve_base_url(self.task.country)
        params = {
            "pl": "true",
            "mts.0": "regular",
            "parts.0": device.device_code,
            "location": self.task.location,
        }
        # the endpoint throttles requests that do not look like they come from a product page
        headers = {"Referer": f"{base_url}{REFERER_PATH}/{device.device_code}"}
        return f"{base_url}{FULFILLMENT_PATH}", params, headers

    def check_device(self, device: DeviceItem) -> list[StoreAvailability]:
        try:
            return self._check_device(device)
        except Exception as exc:  # noqa: BLE001
            LOG.exception("monitor failed device=%s error=%s", device.device_code, exc)
            return []

    def _check_device(self, device: DeviceItem) -> list[StoreAvailability]:
        url, params, headers = self.build_request(device)
        response = self.session.get(url, params=params, headers=headers, timeout=self.timeout_seconds)
        if not response.ok:
            LOG.warning(
                "request rejected (status=%s), requests are probably too frequent; "
                "consider cronExpressions %r",
                response.status_code,
                recommended_cron(len(self.task.device_list)),
            )
            return []

        payload = response.json()
        pickup_message = (((payload or {}).get("body") or {}).get("content") or {}).get("pickupMessage") or {}
        stores = pickup_message.get("stores")
        if stores is None:
            LOG.warning(
                "no store list for %s, the product code is probably wrong "
                "(product codes differ between countries)",
                device.device_code,
            )
            LOG.debug("pickupMessage=%s", pickup_message)
            return []

        if not stores:
            LOG.info("no Apple Store near %s, check that the location is correct", self.task.location)
            return []

        results: list[StoreAvailability] = []
        for store in filter_stores(stores, device.store_allow_list):
            availability = parse_store(store, device.device_code)
            message = availability.message(self.task.location)
            if availability.is_available:
                self.dispatcher.send_all(message, device.push_targets)
            LOG.info("%s", message)
            results.append(availability)
        return results
