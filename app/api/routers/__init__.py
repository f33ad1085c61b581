"""
app/api/routers package marker.
"""

from app.api.routers.metrics_router import router as metrics_router
from app.api.routers.report_upload import router as report_upload_router
from app.api.routers.reports_router import router as reports_router

__all__ = [
    "metrics_router",
    "report_upload_router",
    "reports_router",
]
