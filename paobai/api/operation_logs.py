"""
操作日志查询API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc
from sqlalchemy.orm import Session

from paobai.core.security import require_admin
from paobai.db.database import get_db
from paobai.models.operation_log import OperationLog
from paobai.schemas.common import ApiResponse, PageData, paginate
from paobai.schemas.operation_log import OperationLogResponse

router = APIRouter(prefix="/admin/operation-logs", tags=["操作日志"], dependencies=[Depends(require_admin)])


@router.get("", response_model=ApiResponse[PageData[OperationLogResponse]])
def get_operation_logs(
    username: Optional[str] = Query(None, description="操作人筛选"),
    module: Optional[str] = Query(None, description="模块筛选"),
    method: Optional[str] = Query(None, description="HTTP方法筛选"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """获取操作日志列表，按时间倒序"""
    query = db.query(OperationLog)
    if username:
        query = query.filter(OperationLog.username.like(f"%{username}%"))
    if module:
        query = query.filter(OperationLog.module == module)
    if method:
        query = query.filter(OperationLog.method == method.upper())
    query = query.order_by(desc(OperationLog.created_at), desc(OperationLog.id))

    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=PageData(
        items=[OperationLogResponse.model_validate(log) for log in rows],
        pagination=pagination,
    ))
