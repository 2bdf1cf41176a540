"""
Integration tests for http_resilience.

Test components together through real httpx clients:
- RetryEngine with httpx.Client and httpx.AsyncClient
- Built-in policies against genuine httpx responses and transport errors
"""
