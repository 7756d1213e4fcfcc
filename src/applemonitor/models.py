from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

NO_ADDRESS = "no address available"
NO_PHONE = "no phone available"


class PickupDisplay(str, Enum):
    AVAILABLE = "available"
    OTHER = "other"

    @classmethod
    def from_raw(cls, value: str | None) -> "PickupDisplay":
        return cls.AVAILABLE if value == cls.AVAILABLE.value else cls.OTHER


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PushTarget(_ConfigModel):
    service_url: str | None = Field(default=None, alias="barkPushUrl")
    device_token: str | None = Field(default=None, alias="barkPushToken")
    sound: str | None = Field(default=None, alias="barkPushSound")
    webhook_url: str | None = Field(default=None, alias="feishuBotWebhooks")
    signing_secret: str | None = Field(default=None, alias="feishuBotSecret")

    @property
    def push_enabled(self) -> bool:
        return bool(self.service_url and self.device_token)

    @property
    def webhook_enabled(self) -> bool:
        return bool(self.webhook_url and self.signing_secret)


class DeviceItem(_ConfigModel):
    device_code: str = Field(default="", alias="deviceCode")
    store_allow_list: list[str] | None = Field(default=None, alias="storeWhiteList")
    push_targets: list[PushTarget] = Field(default_factory=list, alias="pushConfigs")


class TaskConfig(_ConfigModel):
    device_list: list[DeviceItem] = Field(default_factory=list, alias="deviceCodeList")
    location: str = ""
    schedule: str = Field(default="", alias="cronExpressions")
    country: str = ""


class AppConfig(_ConfigModel):
    task: TaskConfig = Field(alias="appleTaskConfig")


@dataclass(slots=True)
class StoreAvailability:
    store_name: str
    product_title: str
    status_text: str
    pickup_display: PickupDisplay
    raw_pickup_display: str | None
    address: str
    phone: str
    distance_with_unit: str

    @property
    def is_available(self) -> bool:
        return self.pickup_display is PickupDisplay.AVAILABLE

    def message(self, location: str) -> str:
        text = f"store:{self.store_name}, model:{self.product_title}, status:{self.status_text}"
        if not self.is_available:
            return text
        return (
            f"{text}\npickup address:{self.address or NO_ADDRESS}, "
            f"phone:{self.phone or NO_PHONE}, "
            f"distance from {location}:{self.distance_with_unit}"
        )
