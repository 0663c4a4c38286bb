from .images import router as images_router

__all__ = ["images_router"]
