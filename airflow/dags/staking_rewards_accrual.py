"""
Staking Rewards Accrual DAG

Credits staking rewards to every active position through the backend API.
Rewards accrue per elapsed second, so the schedule only controls how often
balances are brought up to date, not how much is earned.

Schedule: Hourly
"""

import logging
import os
from datetime import datetime, timedelta

import requests
from airflow.sdk import dag, task
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv("/opt/airflow/backend/.env")

BACKEND_URL = os.getenv("BACKEND_URL", "http://host.docker.internal:8000")

default_args = {
    "owner": "coinfolio",
    "depends_on_past": False,
    "email_on_failure": False,
    "email_on_retry": False,
    "retries": 2,
    "retry_delay": timedelta(minutes=2),
}


def post_backend(path: str, timeout: int = 120) -> dict:
    """POST to the backend and return a status dict; never raises."""
    try:
        response = requests.post(f"{BACKEND_URL}{path}", timeout=timeout)
    except requests.Timeout:
        logger.exception("Request to %s timed out", path)
        return {"status": "failed", "error": f"Request timed out after {timeout}s"}
    except requests.RequestException as e:
        logger.exception("Network error calling %s", path)
        return {"status": "failed", "error": str(e)}

    if response.status_code != 200:
        error_msg = response.text[:200]
        logger.error("%s returned %d - %s", path, response.status_code, error_msg)
        return {"status": "failed", "error": f"HTTP {response.status_code}: {error_msg}"}

    return {"status": "success", **response.json()}


@dag(
    dag_id="staking_rewards_accrual",
    default_args=default_args,
    description="Accrue staking rewards for all active positions",
    schedule="0 * * * *",
    start_date=datetime(2026, 1, 1),
    catchup=False,
    tags=["coinfolio", "staking"],
)
def staking_rewards_accrual():
    @task(task_id="update_rewards")
    def update_rewards() -> dict:
        result = post_backend("/api/staking/update-rewards")
        if result["status"] == "success":
            logger.info(
                "Accrual complete: %s/%s positions updated, %s errors",
                result.get("updated", 0),
                result.get("total", 0),
                result.get("errors", 0),
            )
        return result

    update_rewards()


@dag(
    dag_id="portfolio_snapshot_capture",
    default_args=default_args,
    description="Capture daily valuation snapshots and drop expired ones",
    schedule="5 0 * * *",  # 00:05 UTC daily
    start_date=datetime(2026, 1, 1),
    catchup=False,
    tags=["coinfolio", "snapshots"],
)
def portfolio_snapshot_capture():
    @task(task_id="capture_snapshots")
    def capture_snapshots() -> dict:
        result = post_backend("/api/snapshots/all", timeout=300)
        if result["status"] == "success":
            logger.info("Captured %s portfolio snapshots", result.get("captured", 0))
        return result

    @task(task_id="cleanup_old_snapshots")
    def cleanup_old_snapshots() -> dict:
        result = post_backend("/api/snapshots/cleanup")
        if result["status"] == "success":
            logger.info("Deleted %s expired snapshots", result.get("deleted", 0))
        return result

    capture_snapshots() >> cleanup_old_snapshots()


# Instantiate the DAGs
accrual_dag = staking_rewards_accrual()
snapshot_dag = portfolio_snapshot_capture()
