"""Pure domain pieces: the order-key registry and the error taxonomy.

Free of FastAPI/HTTP concerns so they can be unit-tested on their own.
"""
__all__ = ["keys", "errors"]
