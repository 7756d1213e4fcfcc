from __future__ import annotations

import logging
from typing import Any

from applemonitor.models import DeviceItem, PushTarget, TaskConfig
from applemonitor.monitor import InventoryPoller, filter_stores, store_matches

CODE = "MQ0D3CH/A"


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return self.payload


class FakeSession:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.calls: list[dict[str, Any]] = []

    def get(self, url, params=None, headers=None, timeout=None):  # type: ignore[no-untyped-def]
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        return self.response


class RecordingDispatcher:
    def __init__(self) -> None:
        self.sent: list[tuple[str, list[PushTarget]]] = []

    def send_all(self, message: str, targets) -> None:  # type: ignore[no-untyped-def]
        self.sent.append((message, list(targets)))


def _store(name: str, display: str = "available", address: str = "1 Main St\nShanghai") -> dict[str, Any]:
    return {
        "storeName": name,
        "partsAvailability": {
            CODE: {
                "pickupDisplay": display,
                "pickupSearchQuote": "Available Today" if display == "available" else "Unavailable",
                "messageTypes": {"regular": {"storePickupProductTitle": "iPhone 14 Pro 256GB Deep Purple"}},
            }
        },
        "retailStore": {
            "distanceWithUnit": "3.2 km",
            "address": {"twoLineAddress": address, "daytimePhone": "400-666-8800"},
        },
    }


def _payload(stores: list[dict[str, Any]] | None) -> dict[str, Any]:
    pickup: dict[str, Any] = {} if stores is None else {"stores": stores}
    return {"body": {"content": {"pickupMessage": pickup}}}


def _task(allow_list: list[str] | None = None, targets: list[PushTarget] | None = None) -> TaskConfig:
    if targets is None:
        targets = [
            PushTarget(service_url="https://api.day.app/push", device_token="tok", sound="glass"),
            PushTarget(webhook_url="https://open.feishu.cn/hook", signing_secret="s3cret"),
        ]
    return TaskConfig(
        device_list=[DeviceItem(device_code=CODE, store_allow_list=allow_list, push_targets=targets)],
        location="Shanghai Huangpu",
        schedule="*/3 * * * * ?",
        country="CN",
    )


def _poller(response: FakeResponse, task: TaskConfig | None = None):
    task = task or _task()
    dispatcher = RecordingDispatcher()
    session = FakeSession(response)
    poller = InventoryPoller(task, dispatcher, session=session)  # type: ignore[arg-type]
    return poller, dispatcher, session, task.device_list[0]


def test_empty_allow_list_keeps_every_store() -> None:
    stores = [_store("A"), _store("B"), _store("C")]
    assert filter_stores(stores, []) == stores
    assert filter_stores(stores, None) == stores


def test_store_matching_is_bidirectional_substring() -> None:
    assert store_matches("City Mall Store", ["Mall"])
    assert store_matches("City Mall Store", ["City Mall Store Extra"])
    assert not store_matches("Harbor Point", ["Mall"])
    assert not store_matches("City Mall Store", ["mall"])


def test_request_carries_query_and_referer() -> None:
    poller, _, session, device = _poller(FakeResponse(_payload([])))
    poller.check_device(device)

    call = session.calls[0]
    assert call["url"] == "https://www.apple.com.cn/shop/fulfillment-messages"
    assert call["params"] == {
        "pl": "true",
        "mts.0": "regular",
        "parts.0": CODE,
        "location": "Shanghai Huangpu",
    }
    assert call["headers"] == {"Referer": f"https://www.apple.com.cn/shop/buy-iphone/iphone-14-pro/{CODE}"}
    assert call["timeout"] == 10.0


def test_no_nearby_store_logs_and_skips_dispatch(caplog) -> None:
    caplog.set_level(logging.INFO)
    poller, dispatcher, _, device = _poller(FakeResponse(_payload([])))

    assert poller.check_device(device) == []
    assert dispatcher.sent == []
    assert "no Apple Store near Shanghai Huangpu" in caplog.text


def test_available_store_dispatches_once_to_all_targets() -> None:
    poller, dispatcher, _, device = _poller(FakeResponse(_payload([_store("Nanjing East")])))

    results = poller.check_device(device)

    assert len(results) == 1
    assert len(dispatcher.sent) == 1
    message, targets = dispatcher.sent[0]
    assert targets == device.push_targets
    assert message == (
        "store:Nanjing East, model:iPhone 14 Pro 256GB Deep Purple, status:Available Today\n"
        "pickup address:1 Main St Shanghai, phone:400-666-8800, distance from Shanghai Huangpu:3.2 km"
    )


def test_unavailable_store_is_logged_but_not_dispatched(caplog) -> None:
    caplog.set_level(logging.INFO)
    poller, dispatcher, _, device = _poller(FakeResponse(_payload([_store("Pudong", display="unavailable")])))

    results = poller.check_device(device)

    assert len(results) == 1
    assert results[0].raw_pickup_display == "unavailable"
    assert dispatcher.sent == []
    assert "store:Pudong, model:iPhone 14 Pro 256GB Deep Purple, status:Unavailable" in caplog.text


def test_rate_limited_response_aborts_quietly(caplog) -> None:
    caplog.set_level(logging.INFO)
    poller, dispatcher, _, device = _poller(FakeResponse(None, status_code=429))

    assert poller.check_device(device) == []
    assert dispatcher.sent == []
    assert "too frequent" in caplog.text


def test_missing_store_list_hints_at_wrong_product_code(caplog) -> None:
    caplog.set_level(logging.INFO)
    poller, dispatcher, _, device = _poller(FakeResponse(_payload(None)))

    assert poller.check_device(device) == []
    assert dispatcher.sent == []
    assert "product code is probably wrong" in caplog.text


def test_allow_list_filters_stores_before_evaluation() -> None:
    task = _task(allow_list=["Mall"])
    stores = [_store("City Mall Store"), _store("Harbor Point")]
    poller, dispatcher, _, device = _poller(FakeResponse(_payload(stores)), task)

    results = poller.check_device(device)

    assert [r.store_name for r in results] == ["City Mall Store"]
    assert len(dispatcher.sent) == 1
    assert dispatcher.sent[0][0].startswith("store:City Mall Store,")


def test_blank_address_and_phone_use_fallbacks() -> None:
    store = _store("Sanlitun", address="")
    store["retailStore"]["address"]["daytimePhone"] = ""
    poller, dispatcher, _, device = _poller(FakeResponse(_payload([store])))

    poller.check_device(device)

    assert "pickup address:no address available, phone:no phone available" in dispatcher.sent[0][0]


def test_repeated_checks_announce_unchanged_availability_again() -> None:
    poller, dispatcher, _, device = _poller(FakeResponse(_payload([_store("Nanjing East")])))

    poller.check_device(device)
    poller.check_device(device)

    assert len(dispatcher.sent) == 2
    assert dispatcher.sent[0] == dispatcher.sent[1]


def test_unexpected_shape_is_caught_at_device_boundary(caplog) -> None:
    broken = {"storeName": "Nanjing East", "partsAvailability": {}}
    poller, dispatcher, _, device = _poller(FakeResponse(_payload([broken])))

    assert poller.check_device(device) == []
    assert dispatcher.sent == []
    assert "monitor failed" in caplog.text
