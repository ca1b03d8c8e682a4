"""Request-execution pipeline: errors, retries, progress and metrics."""
