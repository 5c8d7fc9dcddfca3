# launcher.py
"""
Starts the API (uvicorn) and the daily auto-billing scheduler.

With BILLING_BACKEND=memory the database only lives inside one process, so
the scheduler runs embedded in a single API worker instead.
"""
import logging
import multiprocessing
import os
import subprocess
import sys

from dotenv import load_dotenv

ENV_FILE = ".env"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [Launcher] - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("Launcher")


def start_api_process(workers: str, env: dict) -> subprocess.Popen:
    host = os.getenv("UVICORN_HOST", "0.0.0.0")
    port = os.getenv("UVICORN_PORT", "8000")
    cmd = [
        sys.executable, "-m", "uvicorn",
        "app.main:app",
        "--host", host,
        "--port", port,
        "--workers", workers,
        "--log-level", "info",
        "--no-server-header",
        "--proxy-headers",
    ]
    logger.info(f"Starting API on {host}:{port} with {workers} worker(s)")
    return subprocess.Popen(cmd, env=env, stdin=subprocess.DEVNULL)


def main():
    load_dotenv(ENV_FILE)

    if not os.getenv("SECRET_KEY"):
        logger.error("SECRET_KEY is not set. Add it to .env (see .env.example).")
        sys.exit(1)

    from app.core.config import get_settings

    env = dict(os.environ)
    p_scheduler = None

    if get_settings().billing_backend == "memory":
        env["EMBEDDED_SCHEDULER"] = "true"
        workers = "1"
    else:
        from app.db.engine_sync import create_sync_db_and_tables
        from app.scheduler import run_scheduler

        create_sync_db_and_tables()
        env["EMBEDDED_SCHEDULER"] = "false"
        workers = os.getenv("UVICORN_WORKERS", "2")
        p_scheduler = multiprocessing.Process(target=run_scheduler, name="Scheduler")

    p_uvicorn = None
    try:
        if p_scheduler:
            p_scheduler.start()
        p_uvicorn = start_api_process(workers, env)
        p_uvicorn.wait()
    except KeyboardInterrupt:
        pass
    finally:
        if p_uvicorn and p_uvicorn.poll() is None:
            p_uvicorn.terminate()
            p_uvicorn.wait(timeout=10)
        if p_scheduler and p_scheduler.is_alive():
            p_scheduler.terminate()
            p_scheduler.join(timeout=10)
        logger.info("Stopped")


if __name__ == "__main__":
    main()
