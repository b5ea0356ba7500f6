"""
Core request-handling components.

This package contains the cross-cutting pieces every route relies on:
- Token verification, session middleware and CSRF checks
- The authorization predicate
- The sliding-window rate limiter
- Pagination/query parsing
- Metrics, health checks and value masking
"""
