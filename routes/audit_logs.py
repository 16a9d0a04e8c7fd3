from flask import Blueprint, jsonify, request
from models.audit_log import AuditLog

audit_bp = Blueprint("audit", __name__, url_prefix="/api")


@audit_bp.get("/audit-logs")
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    action = request.args.get("action")
    entity = request.args.get("entity")
    entity_id = request.args.get("entity_id")

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if entity:
        q = q.filter(AuditLog.entity == entity)
    if entity_id:
        q = q.filter(AuditLog.entity_id == entity_id)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify(success=True, count=len(rows), data=[
        {
            "id": r.id,
            "created_at": r.timestamp.isoformat(),
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "user_agent": r.user_agent,
            "metadata": r.details,
        }
        for r in rows
    ]), 200
