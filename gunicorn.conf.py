import os

# Logging
accesslog = "-"  # Log to stdout
errorlog = "-"   # Log to stderr
loglevel = os.getenv("LOG_LEVEL", "info").lower()

bind = os.getenv("BIND", "0.0.0.0:5000")

# Worker configuration. The memory store is per process, so it needs a single
# worker; SIGNING_STORE=sql can use more.
workers = int(os.getenv("WEB_CONCURRENCY", "1" if os.getenv("SIGNING_STORE", "memory") == "memory" else "3"))
worker_class = "sync"
timeout = 60

# Path handling
forwarded_allow_ips = "*"

# Error handling
capture_output = True
enable_stdio_inheritance = True
