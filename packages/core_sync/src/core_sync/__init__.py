from .manifest import (
    DataField, Manifest, Subscriptions,
    get_manifest, does_publish, does_subscribe, get_subscribed_fields, is_critical,
    get_field_details, get_subscribers_for_field,
)
from .bus import EventBus, Subscription
from .guard import UpdateState, is_update_too_recent, should_process_update, begin_update, end_update
from .debounce import DebouncedScheduler
from .session import SyncSession
from .controller import NodeController

__all__ = [
    "DataField", "Manifest", "Subscriptions",
    "get_manifest", "does_publish", "does_subscribe", "get_subscribed_fields", "is_critical",
    "get_field_details", "get_subscribers_for_field",
    "EventBus", "Subscription",
    "UpdateState", "is_update_too_recent", "should_process_update", "begin_update", "end_update",
    "DebouncedScheduler", "SyncSession", "NodeController",
]
