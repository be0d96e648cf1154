"""Rate limiting adapters.

This package provides a small abstraction layer so the governor can combine
a token bucket and a sliding window (or two buckets) per scope, and later
move the state to a shared store without changing the API layer.
"""
