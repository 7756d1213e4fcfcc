from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from enum import Enum
from typing import Iterable

import requests

from applemonitor.models import PushTarget

LOG = logging.getLogger(__name__)

TITLE = "Apple Store Monitor"
GROUP = "Apple Monitor"


class BarkSound(str, Enum):
    ALARM = "alarm"
    ANTICIPATE = "anticipate"
    BELL = "bell"
    BIRDSONG = "birdsong"
    BLOOM = "bloom"
    CALYPSO = "calypso"
    CHIME = "chime"
    CHOO = "choo"
    DESCENT = "descent"
    ELECTRONIC = "electronic"
    FANFARE = "fanfare"
    GLASS = "glass"
    GOTOSLEEP = "gotosleep"
    HEALTHNOTIFICATION = "healthnotification"
    HORN = "horn"
    LADDER = "ladder"
    MAILSENT = "mailsent"
    MINUET = "minuet"
    MULTIWAYINVITATION = "multiwayinvitation"
    NEWMAIL = "newmail"
    NEWSFLASH = "newsflash"
    NOIR = "noir"
    PAYMENTSUCCESS = "paymentsuccess"
    SHAKE = "shake"
    SHERWOODFOREST = "sherwoodforest"
    SILENCE = "silence"
    SPELL = "spell"
    SUSPENSE = "suspense"
    TELEGRAPH = "telegraph"
    TIPTOES = "tiptoes"
    TYPEWRITERS = "typewriters"
    UPDATE = "update"

    @classmethod
    def is_known(cls, name: str) -> bool:
        return name in cls._value2member_map_


DEFAULT_SOUND = BarkSound.GLASS.value


def feishu_sign(secret: str, timestamp: int) -> str:
    # Feishu keys the HMAC with "timestamp\nsecret" and signs an empty message.
    string_to_sign = f"{timestamp}\n{secret}".encode("utf-8")
    digest = hmac.new(string_to_sign, digestmod=hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


class AlertSink:
    def send(self, message: str) -> None:
        raise NotImplementedError


class DryRunAlertSink(AlertSink):
    def __init__(self, channel: str) -> None:
        self.channel = channel

    def send(self, message: str) -> None:
        LOG.info("[DRY RUN] %s alert: %s", self.channel, message)


class BarkAlertSink(AlertSink):
    def __init__(
        self,
        service_url: str,
        device_token: str,
        sound: str | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.service_url = service_url
        self.device_token = device_token
        self.sound = sound or DEFAULT_SOUND
        self.timeout_seconds = timeout_seconds

    def send(self, message: str) -> None:
        response = requests.post(
            self.service_url,
            json={
                "device_key": self.device_token,
                "title": TITLE,
                "body": message,
                "category": TITLE,
                "group": GROUP,
                "sound": self.sound,
            },
            timeout=self.timeout_seconds,
        )
        LOG.info("bark push status=%s body=%s", response.status_code, response.text)
        if response.status_code >= 300:
            raise RuntimeError(f"bark push failed ({response.status_code}): {response.text}")


class FeishuBotAlertSink(AlertSink):
    def __init__(self, webhook_url: str, secret: str, timeout_seconds: float = 10.0) -> None:
        self.webhook_url = webhook_url
        self.secret = secret
        self.timeout_seconds = timeout_seconds

    def build_payload(self, message: str) -> dict[str, object]:
        timestamp = int(time.time())
        return {
            "msg_type": "text",
            "content": {"text": message},
            "timestamp": timestamp,
            "sign": feishu_sign(self.secret, timestamp),
        }

    def send(self, message: str) -> None:
        response = requests.post(
            self.webhook_url,
            json=self.build_payload(message),
            timeout=self.timeout_seconds,
        )
        LOG.info("feishu bot status=%s body=%s", response.status_code, response.text)
        if response.status_code >= 300:
            raise RuntimeError(f"feishu bot push failed ({response.status_code}): {response.text}")

        try:
            reply = response.json()
        except ValueError:
            return
        if isinstance(reply, dict) and reply.get("code") not in (None, 0):
            LOG.warning("feishu bot rejected message code=%s msg=%s", reply.get("code"), reply.get("msg"))


class NotificationDispatcher:
    def __init__(self, dry_run: bool = False, timeout_seconds: float = 10.0) -> None:
        self.dry_run = dry_run
        self.timeout_seconds = timeout_seconds

    def sinks_for(self, target: PushTarget) -> list[tuple[str, AlertSink]]:
        sinks: list[tuple[str, AlertSink]] = []
        if target.push_enabled:
            sink: AlertSink = (
                DryRunAlertSink("bark")
                if self.dry_run
                else BarkAlertSink(
                    target.service_url or "",
                    target.device_token or "",
                    sound=target.sound,
                    timeout_seconds=self.timeout_seconds,
                )
            )
            sinks.append(("bark", sink))
        if target.webhook_enabled:
            sink = (
                DryRunAlertSink("feishu")
                if self.dry_run
                else FeishuBotAlertSink(
                    target.webhook_url or "",
                    target.signing_secret or "",
                    timeout_seconds=self.timeout_seconds,
                )
            )
            sinks.append(("feishu", sink))
        return sinks

    def send_all(self, message: str, targets: Iterable[PushTarget]) -> None:
        for target in targets:
            for channel, sink in self.sinks_for(target):
                try:
                    sink.send(message)
                except Exception as exc:  # noqa: BLE001
                    LOG.exception("%s alert delivery failed: %s", channel, exc)
