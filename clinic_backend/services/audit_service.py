"""Audit service — append-only audit trail for all mutations."""

import json
from typing import Optional, Any, Dict
from sqlalchemy.orm import Session
from fastapi import Request

from clinic_backend.models.audit_log import AuditLog
from clinic_backend.services.query_filters import paginate


class AuditService:
    """Records immutable audit log entries for system events."""

    @staticmethod
    def log(
        db: Session,
        actor_id: Optional[int],
        actor_email: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        new_value: Optional[Any] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Write a single audit log record.

        Args:
            action: e.g. "appointment.accepted", "role.permissions_assigned"
            resource_type: appointment, patient, doctor, clinic, employee, role, permission, user

        This method commits immediately to ensure audit is never lost.
        """
        entry = AuditLog(
            actor_id=actor_id,
            actor_email=actor_email,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            new_value_json=json.dumps(new_value, default=str) if new_value else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        principal,
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        new_value: Optional[Any] = None,
    ) -> AuditLog:
        """Write audit log extracting actor, IP and user-agent from the request."""
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")[:500]
        return AuditService.log(
            db=db,
            actor_id=principal.user_id if principal else None,
            actor_email=principal.email if principal else None,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            new_value=new_value,
            ip_address=ip,
            user_agent=ua,
        )

    @staticmethod
    def query_logs(
        db: Session,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        """Query audit logs with filters and pagination."""
        query = db.query(AuditLog)

        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if action:
            query = query.filter(AuditLog.action.ilike(f"%{action}%"))
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)

        return paginate(query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()), page, page_size)


audit_service = AuditService()
