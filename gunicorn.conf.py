"""
Gunicorn configuration for Signal Radar production deployment.

Usage:
    gunicorn radar.main:app -c gunicorn.conf.py
"""

# Bind to all interfaces on port 8000
bind = "0.0.0.0:8000"

# One worker: the poll scheduler runs inside the app process, and each
# extra worker would start its own copy of the polling jobs.
workers = 1

# Use Uvicorn's ASGI worker for FastAPI
worker_class = "uvicorn.workers.UvicornWorker"

# Request timeout (seconds)
timeout = 60

# Keep-alive connections (seconds)
keepalive = 5

# Logging
accesslog = "-"  # stdout
errorlog = "-"   # stderr
loglevel = "info"
