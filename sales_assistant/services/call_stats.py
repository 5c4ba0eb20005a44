"""Aggregate statistics over Aircall call records."""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class CallStats:
    """Team-wide call totals. Durations are in seconds."""

    total_calls: int
    inbound_calls: int
    outbound_calls: int
    answered_calls: int
    missed_calls: int
    total_duration: int
    avg_duration: float
    total_talk_time: int
    avg_talk_time: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RepCallStats:
    """Per-rep call totals."""

    name: str
    email: str
    user_id: int
    total_calls: int = 0
    inbound_calls: int = 0
    outbound_calls: int = 0
    answered_calls: int = 0
    total_duration: int = 0
    avg_duration: float = 0.0
    longest_call: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _is_answered(call: dict[str, Any]) -> bool:
    return call.get("status") == "answered" or bool(call.get("answered_at"))


def _talk_time(call: dict[str, Any]) -> int:
    answered_at, ended_at = call.get("answered_at"), call.get("ended_at")
    if answered_at and ended_at:
        return int(ended_at) - int(answered_at)
    return int(call.get("duration") or 0)


def compute_call_stats(calls: list[dict[str, Any]]) -> CallStats:
    answered = [c for c in calls if _is_answered(c)]
    total_duration = sum(int(c.get("duration") or 0) for c in calls)
    total_talk_time = sum(_talk_time(c) for c in answered)

    return CallStats(
        total_calls=len(calls),
        inbound_calls=sum(1 for c in calls if c.get("direction") == "inbound"),
        outbound_calls=sum(1 for c in calls if c.get("direction") == "outbound"),
        answered_calls=len(answered),
        missed_calls=sum(1 for c in calls if c.get("missed_call_reason") is not None),
        total_duration=total_duration,
        avg_duration=total_duration / len(calls) if calls else 0.0,
        total_talk_time=total_talk_time,
        avg_talk_time=total_talk_time / len(answered) if answered else 0.0,
    )


def compute_rep_stats(calls: list[dict[str, Any]]) -> list[RepCallStats]:
    """Per-rep totals, busiest rep first. Calls without a user are skipped."""
    reps: dict[int, RepCallStats] = {}
    for call in calls:
        user = call.get("user")
        if not user:
            continue
        rep = reps.setdefault(
            user["id"],
            RepCallStats(
                name=user.get("name", ""),
                email=user.get("email", ""),
                user_id=user["id"],
            ),
        )
        duration = int(call.get("duration") or 0)
        rep.total_calls += 1
        if call.get("direction") == "inbound":
            rep.inbound_calls += 1
        else:
            rep.outbound_calls += 1
        if _is_answered(call):
            rep.answered_calls += 1
        rep.total_duration += duration
        rep.longest_call = max(rep.longest_call, duration)

    for rep in reps.values():
        rep.avg_duration = rep.total_duration / rep.total_calls if rep.total_calls else 0.0

    return sorted(reps.values(), key=lambda r: r.total_calls, reverse=True)
