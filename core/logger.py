# core/logger.py
from core.db import SessionLocal
from models.audit_log import AuditLog
from datetime import datetime

def log_action(actor: str, action: str, order_id=None, session_factory=None):
    """Record a user action (status update, order placement) into the audit log."""
    session = (session_factory or SessionLocal)()
    try:
        log = AuditLog(
            actor=actor or "anonymous",
            action=action,
            order_id=str(order_id) if order_id is not None else None,
            timestamp=datetime.utcnow(),
        )
        session.add(log)
        session.commit()
    except Exception as e:
        print("Audit log error:", e)
        session.rollback()
    finally:
        session.close()


def recent_actions(order_id=None, limit: int = 20, session_factory=None):
    """Return the newest audit rows, optionally for one order."""
    session = (session_factory or SessionLocal)()
    try:
        query = session.query(AuditLog)
        if order_id is not None:
            query = query.filter(AuditLog.order_id == str(order_id))
        return query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    finally:
        session.close()
