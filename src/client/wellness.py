# src/client/wellness.py
"""
Wellness timer.

Counts "active" seconds (tab visible, recent interaction) and, at fixed
marks, emits reminder banners, a pre-logout warning with a countdown, and a
forced logout. Counters are kept per day in a store so they survive reloads;
changing the policy resets them.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

PROD_THRESHOLDS = (3 * 60, 5 * 60)
PROD_WARN_AT = 6 * 60
PROD_LOGOUT_AT = 7 * 60

TEST_THRESHOLDS = (10, 30)
TEST_WARN_AT = 45
TEST_LOGOUT_AT = 60

GOALS = ("stretch", "eyes", "hydrate", "breathe")

MESSAGES = {
    "stretch": (
        "Quick stretch break? Roll your shoulders and stand up for 30s.",
        "Uncross your legs and stretch calves for 20s.",
        "Stand tall, reach overhead, slow inhale.",
    ),
    "eyes": (
        "Eye break: look 20 ft away for 20s (20-20-20 rule).",
        "Blink slowly 10 times.",
        "Let your focus shift to something far away for a moment.",
    ),
    "hydrate": (
        "Sip some water. Tiny habit, big payoff.",
        "Hydration nudge: a few sips right now?",
        "Water check: refill and sip.",
    ),
    "breathe": (
        "Take 3 slow breaths: in for 4, out for 6.",
        "Box breathing: 4-4-4-4 for one round.",
        "Soft belly breathing for 20s.",
    ),
}
FALLBACK_MESSAGE = "Time for a quick reset?"


@dataclass
class WellnessSettings:
    enabled: bool = True
    use_test_timings: bool = False
    active_window_sec: int = 60
    max_per_day: int = 20
    quiet_start: int = 0
    quiet_end: int = 0
    goals: Dict[str, bool] = field(default_factory=lambda: {g: True for g in GOALS})

    def timings(self) -> Tuple[Tuple[int, ...], int, int]:
        """(reminder thresholds, warn at, logout at) in active seconds."""
        if self.use_test_timings:
            return TEST_THRESHOLDS, TEST_WARN_AT, TEST_LOGOUT_AT
        return PROD_THRESHOLDS, PROD_WARN_AT, PROD_LOGOUT_AT

    def policy_hash(self) -> str:
        thresholds, warn_at, logout_at = self.timings()
        return json.dumps({
            "enabled": bool(self.enabled),
            "thresholdsSec": list(thresholds),
            "warnAtSec": warn_at,
            "logoutAtSec": logout_at,
            "quiet": {"start": self.quiet_start, "end": self.quiet_end},
        }, sort_keys=True)

    def is_quiet(self, hour: int) -> bool:
        start, end = self.quiet_start, self.quiet_end
        if start == end:
            return False
        if start < end:
            return start <= hour < end
        return hour >= start or hour < end


class MemoryStore:
    """Key/value persistence for the timer. Swap for anything with get/set/delete."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


DAILY_KEY = "wellness.daily"
LAST_SHOWN_KEY = "wellness.lastShownSec"
LOGOUT_FIRED_KEY = "wellness.logoutFired"
POLICY_HASH_KEY = "wellness.policyHash"


@dataclass
class WellnessEvent:
    kind: str  # reminder | warning | logout
    active_sec: int
    message: str = ""
    seconds_left: int = 0


class WellnessTimer:
    def __init__(self, settings: Optional[WellnessSettings] = None, store: Optional[MemoryStore] = None,
                 on_logout: Optional[Callable[[], None]] = None):
        self.settings = settings or WellnessSettings()
        self.store = store if store is not None else MemoryStore()
        self.on_logout = on_logout
        self.last_interaction: Optional[datetime] = None
        self.warning_shown = False
        self.warning_acknowledged = False
        self.ensure_policy()

    # --- persistence ---
    def ensure_policy(self) -> None:
        current = self.settings.policy_hash()
        if self.store.get(POLICY_HASH_KEY) != current:
            self.reset_runtime()
            self.store.set(POLICY_HASH_KEY, current)
            logger.info("Wellness policy changed, counters reset")

    def reset_runtime(self) -> None:
        self.store.delete(DAILY_KEY)
        self.store.delete(LAST_SHOWN_KEY)
        self.store.delete(LOGOUT_FIRED_KEY)

    def daily(self, today: str) -> Dict[str, Any]:
        d = self.store.get(DAILY_KEY)
        if not d or d.get("date") != today:
            d = {"date": today, "count": 0, "activeSec": 0}
            self.store.set(DAILY_KEY, d)
        return d

    @property
    def last_shown_sec(self) -> int:
        return int(self.store.get(LAST_SHOWN_KEY, 0) or 0)

    @property
    def logout_fired(self) -> bool:
        return bool(self.store.get(LOGOUT_FIRED_KEY))

    # --- session hooks ---
    def start_session(self) -> None:
        """Fresh login: clear the logout latch and the warning acknowledgement."""
        self.store.delete(LOGOUT_FIRED_KEY)
        self.warning_shown = False
        self.warning_acknowledged = False

    def touch(self, now: datetime) -> None:
        self.last_interaction = now

    def acknowledge_warning(self) -> None:
        """'Keep reading': hide the warning for the rest of the session; no forced logout follows."""
        self.warning_acknowledged = True

    def pick_message(self, n: int) -> str:
        enabled = [g for g in GOALS if self.settings.goals.get(g)]
        if not enabled:
            return FALLBACK_MESSAGE
        goal = enabled[n % len(enabled)]
        pool = MESSAGES[goal]
        return pool[(n // len(enabled)) % len(pool)]

    # --- main loop ---
    def tick(self, now: datetime, visible: bool = True) -> List[WellnessEvent]:
        """Advance one second. Returns the effects to show for this tick."""
        s = self.settings
        if not s.enabled or s.is_quiet(now.hour):
            return []

        self.ensure_policy()
        daily = self.daily(now.date().isoformat())
        if visible and self.last_interaction is not None:
            idle = (now - self.last_interaction).total_seconds()
            if idle <= s.active_window_sec:
                daily["activeSec"] += 1
                self.store.set(DAILY_KEY, daily)

        active = daily["activeSec"]
        thresholds, warn_at, logout_at = s.timings()
        events: List[WellnessEvent] = []

        shown = self.last_shown_sec
        due = next((t for t in thresholds if t > shown and active >= t), None)
        if due is not None and daily["count"] < s.max_per_day:
            message = self.pick_message(daily["count"])
            daily["count"] += 1
            self.store.set(DAILY_KEY, daily)
            self.store.set(LAST_SHOWN_KEY, due)
            events.append(WellnessEvent("reminder", active, message=message))

        if self.logout_fired or self.warning_acknowledged:
            return events

        if active >= warn_at and not self.warning_shown:
            self.warning_shown = True
            events.append(WellnessEvent("warning", active, seconds_left=max(logout_at - active, 0)))

        if active >= logout_at:
            self.reset_runtime()
            self.store.set(LOGOUT_FIRED_KEY, True)
            logger.info("Wellness forced logout at %ss active", active)
            events.append(WellnessEvent("logout", active))
            if self.on_logout is not None:
                self.on_logout()
        return events

    def seconds_until_logout(self, today: str) -> int:
        _, _, logout_at = self.settings.timings()
        return max(logout_at - self.daily(today)["activeSec"], 0)
