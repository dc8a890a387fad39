from .routes import items_bp  # noqa: F401
