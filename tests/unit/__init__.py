"""
Unit tests for http_resilience.

Test individual components in isolation:
- Backoff calculator (jitter band, clamping, per-thread random source)
- Retry options (filters, freezing, settings binding)
- Policies and the policy registry
- Retry engine (sync and async attempt loops)
- Logging sinks
"""
