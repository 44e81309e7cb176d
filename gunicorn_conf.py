# gunicorn -c gunicorn_conf.py comicsmith.main:app
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"
worker_class = "uvicorn.workers.UvicornWorker"

# a single worker: conversation state and the comic store are per process
workers = 1
timeout = 1800            # image generation runs inside the request
graceful_timeout = 120
keepalive = 75
threads = 2

# recycle the worker now and then to contain leaks
max_requests = int(os.getenv("MAX_REQUESTS", "1000"))
max_requests_jitter = int(os.getenv("MAX_REQUESTS_JITTER", "100"))

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
