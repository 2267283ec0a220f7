"""Observability helpers: structlog logging, OpenTelemetry spans/baggage, and the
`http-calls` duration histogram recorded by the request middleware.
"""
