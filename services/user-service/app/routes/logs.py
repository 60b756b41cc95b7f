"""
Log Retrieval Routes
Super-admin access to the application log files
"""

from fastapi import APIRouter, HTTPException, status, Query
from fastapi.responses import PlainTextResponse
from typing import Optional

from app.utils.dependencies import AppLoggerDep, SuperAdminUser

router = APIRouter()


@router.get("/logs", response_class=PlainTextResponse)
async def get_logs(
    app_logger: AppLoggerDep,
    current_user: SuperAdminUser,
    date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="Day as YYYY-MM-DD")
):
    """Contents of the day's active log file, buffered entries included"""
    app_logger.flush()
    contents = app_logger.get_logs(date)
    if contents is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No logs found")
    return contents


@router.get("/logs/files")
async def list_log_files(app_logger: AppLoggerDep, current_user: SuperAdminUser):
    return {"success": True, "data": app_logger.get_log_files()}
