import os


# -------- Sync engine timing (milliseconds) -------------------------------
# Trailing debounce before a local edit is written back to storage.
SYNC_DEBOUNCE_MS = int(os.getenv("SYNC_DEBOUNCE_MS", "1000"))
# Aggregate fields (allocations, rollups, costs) are more expensive to persist.
SYNC_AGGREGATE_DEBOUNCE_MS = int(os.getenv("SYNC_AGGREGATE_DEBOUNCE_MS", "2000"))
# A second write attempt on the same field inside this window is dropped.
SYNC_RECENT_BUFFER_MS = int(os.getenv("SYNC_RECENT_BUFFER_MS", "100"))
# Incoming events whose fields were all touched inside this window are ignored.
SYNC_PROCESS_BUFFER_MS = int(os.getenv("SYNC_PROCESS_BUFFER_MS", "200"))
# The in-flight flag stays up this long after a write completes.
SYNC_UPDATE_GRACE_MS = int(os.getenv("SYNC_UPDATE_GRACE_MS", "150"))

AGGREGATE_FIELDS = ("teamAllocations", "memberAllocations", "rollupEstimate", "costs", "totalCost")

# -------- Capacity defaults -----------------------------------------------
DEFAULT_HOURS_PER_DAY = float(os.getenv("DEFAULT_HOURS_PER_DAY", "8"))
DEFAULT_DAYS_PER_WEEK = float(os.getenv("DEFAULT_DAYS_PER_WEEK", "5"))
DEFAULT_DURATION_DAYS = int(os.getenv("DEFAULT_DURATION_DAYS", "10"))
DEFAULT_TIMEFRAME_DAYS = int(os.getenv("DEFAULT_TIMEFRAME_DAYS", "30"))
# Working days → calendar days when only a duration is known (weekends).
END_DATE_STRETCH = float(os.getenv("END_DATE_STRETCH", "1.4"))

# -------- Storage -----------------------------------------------------------
# Fields carried as serialized JSON text at the storage boundary, with the
# empty value used when the stored text is malformed.
JSON_LIST_FIELDS = ("teamAllocations", "memberAllocations", "childIds", "costs", "roster", "ddItems", "teamMembers")
JSON_DICT_FIELDS = ("season", "position")

HEALTH_PORT = int(os.getenv("PLANNER_API_PORT", "8000"))
