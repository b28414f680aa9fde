# Middleware package init
"""
DevCamper Backend — Middleware Package
=======================================

Middleware Chain (request direction):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and any error body carry the
    same correlation ID. Responses travel the chain in reverse, which is where
    the logging middleware reads the status and duration.
"""
