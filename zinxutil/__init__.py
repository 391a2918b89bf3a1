"""Concurrency utilities: sharded map, snowflake IDs, rotating log writer and timing wheels."""

__version__ = "0.1.0"
__all__ = [
    "hashing",
    "shard_map",
    "snowflake",
    "rotating_writer",
    "delayfunc",
    "timer",
    "timewheel",
    "scheduler",
]