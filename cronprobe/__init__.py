"""cronprobe — cron-scheduled URL health checks with a queryable execution ledger."""

__version__ = "0.1.0"
