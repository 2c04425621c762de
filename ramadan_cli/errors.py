from __future__ import annotations


class ScheduleError(RuntimeError):
    """Base for every failure that sends the resolver into degraded mode."""

    kind = "schedule-error"


class NetworkFailure(ScheduleError):
    kind = "network-failure"


class MalformedResponse(ScheduleError):
    kind = "malformed-response"


class ParseFailure(ScheduleError):
    kind = "parse-failure"
