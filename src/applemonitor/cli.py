from __future__ import annotations

import logging

from rich.logging import RichHandler

from applemonitor.config import ConfigError, RuntimeSettings
from applemonitor.runner import build_service

LOG = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    # one line per scheduled run is noise at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def main() -> None:
    settings = RuntimeSettings.from_env()
    configure_logging(settings.log_level)

    try:
        service = build_service(str(settings.config_path), dry_run=settings.dry_run)
    except ConfigError as exc:
        LOG.error("cannot start: %s", exc)
        raise SystemExit(1) from exc

    service.run_forever()


if __name__ == "__main__":
    main()
