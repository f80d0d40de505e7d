"""Gunicorn settings for the Block Patch Engine.

    gunicorn main:app -c deploy/gunicorn.conf.py

Undo history and per-document locks live in process memory, so the
service runs as exactly one Uvicorn worker.
"""

import os

bind = os.getenv("BIND", "0.0.0.0:3001")
backlog = 2048

# Must stay 1: a second worker would see its own history and locks.
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"

# GENERATION_TIMEOUT (90s by default) has to fit inside the worker timeout.
timeout = int(os.getenv("WORKER_TIMEOUT", "150"))
graceful_timeout = 30
keepalive = 60

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)sμs'

proc_name = "block-patch-engine"


def on_starting(server):
    server.log.info(
        "Block Patch Engine starting: bind=%s workers=%d timeout=%ds",
        bind,
        workers,
        timeout,
    )
