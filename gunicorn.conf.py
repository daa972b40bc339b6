import os

bind = f"""[::]:{os.getenv("GUNICORN_PORT", os.getenv("PORT", "8080"))}"""
worker_class = "uvicorn.workers.UvicornWorker"
# Beacon dedup is serialized by the database write lock, so extra workers are safe on any backend
workers = os.getenv("GUNICORN_NUM_WORKERS", "1")
timeout = os.getenv("GUNICORN_TIMEOUT", "60")
worker_tmp_dir = os.getenv("GUNICORN_WORKER_DIR")
loglevel = os.getenv("GUNICORN_LOGLEVEL", "INFO").lower()
