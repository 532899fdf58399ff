"""Core runtime primitives (suspension gates, history, navigation, context).

Kept free of FastAPI and Redis concerns so it can be reused by the engine loop,
the HTTP layer, and tests.
"""
