# gunicorn -c gunicorn.conf.py "authkit:create_app()"
import os

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
# The admission limiter keeps its counters in process memory: one worker,
# concurrency through threads.
workers = 1
threads = int(os.getenv("GUNICORN_THREADS", "8"))
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr (collected by Docker)
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Only trust forwarded headers from the local proxy
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")
proxy_protocol = False
