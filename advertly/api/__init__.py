"""
Advertly REST API.

FastAPI application exposing strategy generation (streamed and unary),
Facebook Ads Library research and single-stage AI endpoints.
"""
