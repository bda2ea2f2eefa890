from .routes import relay_error_handler, router

__all__ = ["router", "relay_error_handler"]
