from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from core_config.constants import (
    SYNC_DEBOUNCE_MS,
    SYNC_AGGREGATE_DEBOUNCE_MS,
    SYNC_RECENT_BUFFER_MS,
    SYNC_PROCESS_BUFFER_MS,
    SYNC_UPDATE_GRACE_MS,
    DEFAULT_HOURS_PER_DAY,
    DEFAULT_DAYS_PER_WEEK,
    DEFAULT_DURATION_DAYS,
    DEFAULT_TIMEFRAME_DAYS,
    END_DATE_STRETCH,
)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field(default="dev", alias="ENVIRONMENT")
    service_log_level: str = Field(default="INFO", alias="SERVICE_LOG_LEVEL")

    # Keep edits in memory only; no graph database is contacted.
    offline_mode: bool = Field(default=False, alias="OFFLINE_MODE")

    # Arango
    arango_url: str = Field(default="http://arangodb:8529", alias="ARANGO_URL")
    arango_db: str = Field(default="lattice", alias="ARANGO_DB")
    arango_root_user: str = Field(default="root", alias="ARANGO_ROOT_USER")
    arango_root_password: str = Field(default="lattice", alias="ARANGO_ROOT_PASSWORD")
    arango_graph_name: str = Field(default="lattice_graph", alias="ARANGO_GRAPH_NAME")
    arango_node_collection: str = Field(default="nodes", alias="ARANGO_NODE_COLLECTION")
    arango_edge_collection: str = Field(default="edges", alias="ARANGO_EDGE_COLLECTION")

    # Sync engine timing (milliseconds)
    sync_debounce_ms: int = Field(default=SYNC_DEBOUNCE_MS, alias="SYNC_DEBOUNCE_MS")
    sync_aggregate_debounce_ms: int = Field(default=SYNC_AGGREGATE_DEBOUNCE_MS, alias="SYNC_AGGREGATE_DEBOUNCE_MS")
    sync_recent_buffer_ms: int = Field(default=SYNC_RECENT_BUFFER_MS, alias="SYNC_RECENT_BUFFER_MS")
    sync_process_buffer_ms: int = Field(default=SYNC_PROCESS_BUFFER_MS, alias="SYNC_PROCESS_BUFFER_MS")
    sync_update_grace_ms: int = Field(default=SYNC_UPDATE_GRACE_MS, alias="SYNC_UPDATE_GRACE_MS")

    # Capacity defaults. These only mirror core_config.constants, which the pure
    # calculators import; both read the same environment variables.
    default_hours_per_day: float = Field(default=DEFAULT_HOURS_PER_DAY, alias="DEFAULT_HOURS_PER_DAY")
    default_days_per_week: float = Field(default=DEFAULT_DAYS_PER_WEEK, alias="DEFAULT_DAYS_PER_WEEK")
    default_duration_days: int = Field(default=DEFAULT_DURATION_DAYS, alias="DEFAULT_DURATION_DAYS")
    default_timeframe_days: int = Field(default=DEFAULT_TIMEFRAME_DAYS, alias="DEFAULT_TIMEFRAME_DAYS")
    end_date_stretch: float = Field(default=END_DATE_STRETCH, alias="END_DATE_STRETCH")

    @property
    def is_dev(self) -> bool:
        return str(self.environment or "dev").lower() == "dev"

def get_settings() -> "Settings":
    return Settings()  # type: ignore
