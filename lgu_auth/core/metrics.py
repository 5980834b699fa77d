from prometheus_client import Counter

AUTH_EVENTS = Counter(
    "lgu_auth_events_total",
    "Authentication events by type and outcome",
    ["event", "outcome"],
)
