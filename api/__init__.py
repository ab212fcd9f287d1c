"""
FastAPI game service: routes, persistence, logging and metrics.
"""
