import os
from typing import Optional
import uvicorn


def run(
    app_path: str,
    port: int,
    *,
    host: Optional[str] = None,
    reload: bool = False,
    log_level: Optional[str] = None,
    access_log: bool = True,
) -> None:
    """Serve *app_path* with uvicorn; host and log level default from the environment."""
    uvicorn.run(
        app_path,
        host=host or os.getenv("BIND_HOST", "0.0.0.0"),
        port=port,
        reload=reload,
        log_level=(log_level or os.getenv("SERVICE_LOG_LEVEL", "info")).lower(),
        access_log=access_log,
    )

__all__ = ["run"]
