from __future__ import annotations

import logging
import signal
import threading
import time
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler

from applemonitor.alerts import NotificationDispatcher
from applemonitor.config import load_config, validate_config
from applemonitor.models import AppConfig, StoreAvailability
from applemonitor.monitor import InventoryPoller
from applemonitor.schedule import cron_trigger, recommended_cron

LOG = logging.getLogger(__name__)

DEVICE_DELAY_SECONDS = 1.5
JOB_ID = "apple-monitor"


class MonitorService:
    def __init__(
        self,
        config: AppConfig,
        dispatcher: NotificationDispatcher | None = None,
        poller: InventoryPoller | None = None,
        dry_run: bool = False,
        device_delay_seconds: float = DEVICE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.dispatcher = dispatcher or NotificationDispatcher(dry_run=dry_run)
        self.poller = poller or InventoryPoller(config.task, self.dispatcher)
        self.device_delay_seconds = device_delay_seconds
        self.sleep = sleep
        self._stop = threading.Event()

    def run_once(self) -> list[StoreAvailability]:
        results: list[StoreAvailability] = []
        try:
            for index, device in enumerate(self.config.task.device_list):
                if index:
                    # spacing requests keeps the upstream from throttling us
                    self.sleep(self.device_delay_seconds)
                results.extend(self.poller.check_device(device))
        except Exception as exc:  # noqa: BLE001
            LOG.exception("monitoring pass failed: %s", exc)
        return results

    def send_startup_notifications(self) -> None:
        task = self.config.task
        message = f"Monitor started watching Apple Stores near {task.location}"
        LOG.info("sending startup notifications")
        for device in task.device_list:
            self.dispatcher.send_all(message, device.push_targets)

    def build_scheduler(self) -> BackgroundScheduler:
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.run_once,
            trigger=cron_trigger(self.config.task.schedule),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        return scheduler

    def start(self) -> BackgroundScheduler | None:
        if not validate_config(self.config):
            LOG.warning("configuration is invalid, monitoring is disabled")
            return None

        self.send_startup_notifications()
        device_count = len(self.config.task.device_list)
        LOG.info(
            "monitoring %s device(s); short intervals get requests throttled, suggested cronExpressions: %s",
            device_count,
            recommended_cron(device_count),
        )
        scheduler = self.build_scheduler()
        scheduler.start()
        return scheduler

    def stop(self) -> None:
        self._stop.set()

    def run_forever(self) -> None:
        scheduler = self.start()
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, lambda *_: self.stop())
        try:
            self._stop.wait()
        finally:
            LOG.info("shutting down")
            if scheduler is not None:
                scheduler.shutdown(wait=False)


def build_service(config_path: str, dry_run: bool = False) -> MonitorService:
    config = load_config(config_path)
    return MonitorService(config=config, dry_run=dry_run)
