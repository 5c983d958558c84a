from app.platform.counters.api import router
from app.platform.counters.labels import parse_entry_number
from app.platform.counters.models import EntryCounter, GlobalEntryCounter
from app.platform.counters.service import EntryCounterService, entry_counter_service

__all__ = [
    "router",
    "parse_entry_number",
    "EntryCounter",
    "GlobalEntryCounter",
    "EntryCounterService",
    "entry_counter_service",
]
