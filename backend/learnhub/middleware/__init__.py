"""
LearnHub Backend: Middleware Package
======================================

Middleware chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

Responses travel the chain in reverse, so the request ID header and the
access log line both see the final status code.
"""
