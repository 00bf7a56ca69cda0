# backend/routes/logs.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional, Any
from datetime import date, datetime, time, timedelta
from pydantic import BaseModel, ConfigDict

from database import get_db
from models.log import AuditLog
from models.users import User, ROLE_ADMIN
from utils.tokenJWT import role_required

router = APIRouter(prefix="/logs", tags=["Logs"])


class LogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None


class LogPage(BaseModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int


# Audit trail browser (Admin only)
@router.get("", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="e.g. ORDER_CREATE"),
    user_id: Optional[int] = Query(None),
    resource: Optional[str] = Query(None, description="e.g. orders, cart"),
    status: Optional[str] = Query(None, description="SUCCESS or FAIL"),
    date_from: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    date_to: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    query = db.query(AuditLog)

    if action:
        query = query.filter(AuditLog.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if resource:
        query = query.filter(AuditLog.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(AuditLog.status == status.upper())

    # Whole days: date_to covers everything before the next midnight
    if date_from:
        query = query.filter(AuditLog.ts >= datetime.combine(date_from, time.min))
    if date_to:
        query = query.filter(AuditLog.ts < datetime.combine(date_to + timedelta(days=1), time.min))

    query = query.order_by(AuditLog.ts.desc(), AuditLog.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": logs,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
