# Middleware package init
"""
Dogsfy Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → Route Handler

    - Request ID runs first so every log line, including the access log and
      the exception handlers, can carry the same correlation id.
    - Logging measures the whole handler, including partition fan-outs.
"""
