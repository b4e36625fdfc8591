"""
Backend package for the alumni portal API.

This package provides a FastAPI application over a namespaced key-value
store, with authentication delegated to an external identity service.
"""
