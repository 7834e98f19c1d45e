# FastAPI Routers
from src.routers.app_import_export import router as app_import_export_router

__all__ = [
    "app_import_export_router",
]
