from core_config.constants import HEALTH_PORT
from core_utils.uvicorn_entry import run

if __name__ == "__main__":
    run("planner_api.app:app", port=HEALTH_PORT, access_log=True)
