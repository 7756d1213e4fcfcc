from __future__ import annotations

from apscheduler.triggers.cron import CronTrigger

SECONDS_PER_DEVICE = 3
LAST_WEEKDAY = 6


def recommended_cron(device_count: int) -> str:
    """Cron expression that leaves a few seconds per monitored device between passes."""
    return f"*/{max(device_count, 1) * SECONDS_PER_DEVICE} * * * * ?"


def convert_day_of_week(field: str) -> str:
    """Translate numeric weekdays from cron numbering to APScheduler numbering.

    In the configured expressions 0 and 7 are Sunday and 1 is Monday; APScheduler
    counts from 0 = Monday. Numeric values, ranges, lists and steps are expanded
    into an explicit list; names such as ``mon-fri`` pass through unchanged.
    """
    converted: list[str] = []
    for part in field.split(","):
        body, _, step = part.partition("/")
        if body == "*" and step:
            body = f"0-{LAST_WEEKDAY}"
        bounds = body.split("-")
        if len(bounds) > 2 or not all(bound.isdigit() for bound in bounds):
            converted.append(part)
            continue
        if step and not step.isdigit():
            raise ValueError(f"invalid day-of-week step: {part!r}")

        start = int(bounds[0])
        end = int(bounds[-1]) if len(bounds) == 2 else (LAST_WEEKDAY if step else start)
        if not 0 <= start <= end <= 7:
            raise ValueError(f"day-of-week out of range (0-7): {part!r}")
        for value in range(start, end + 1, int(step or 1)):
            converted.append(str((value - 1) % 7))

    return ",".join(dict.fromkeys(converted))


def cron_trigger(expression: str) -> CronTrigger:
    """Build a trigger from a seconds-resolution cron expression.

    Accepts ``sec min hour day month dow [year]`` as well as the classic
    five-field crontab form, which fires at second 0. ``?`` means "any".
    """
    fields = expression.split()
    if len(fields) == 5:
        fields = ["0", *fields]
    if len(fields) not in (6, 7):
        raise ValueError(f"cron expression must have 5, 6 or 7 fields: {expression!r}")

    fields = ["*" if field == "?" else field for field in fields]
    second, minute, hour, day, month, day_of_week = fields[:6]
    year = fields[6] if len(fields) == 7 else None
    return CronTrigger(
        year=year,
        month=month,
        day=day,
        day_of_week=convert_day_of_week(day_of_week),
        hour=hour,
        minute=minute,
        second=second,
    )
