from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import require_int
from ..common.web import client_ip, current_actor, date_arg, json_body, json_endpoint, role_required
from ..container import Container
from ..core.constants import DEFAULT_SUSPICIOUS_REPORT_LIMIT
from ..core.enums import Role
from .model import HeartbeatPayload


def register(app: Flask, container: Container) -> None:
    activity = container.activity_service

    @app.route("/api/attendance/activity", methods=["POST"], endpoint="activity_heartbeat")
    @json_endpoint
    def activity_heartbeat():
        actor = current_actor()
        payload = HeartbeatPayload.from_json(json_body())
        heartbeat_id = activity.record_heartbeat(actor, payload, ip_address=client_ip())
        return jsonify({"success": True, "heartbeat_id": heartbeat_id}), 200

    @app.route("/api/attendance/activity", methods=["GET"], endpoint="activity_list")
    @json_endpoint
    def activity_list():
        actor = current_actor()
        attendance_id = require_int(request.args.get("attendance_id"), "attendance_id")
        heartbeats = activity.list_heartbeats(actor, attendance_id)
        return jsonify({"success": True, "heartbeats": [h.to_dict() for h in heartbeats]}), 200

    @app.route("/api/admin/suspicious-activity", methods=["GET"], endpoint="admin_suspicious_activity")
    @json_endpoint
    @role_required(Role.ADMIN)
    def admin_suspicious_activity():
        employee_id = request.args.get("employee_id")
        limit = request.args.get("limit")
        summaries = activity.suspicious_summary(
            current_actor(),
            start=date_arg("start"),
            end=date_arg("end"),
            employee_id=require_int(employee_id, "employee_id") if employee_id else None,
            limit=require_int(limit, "limit") if limit else DEFAULT_SUSPICIOUS_REPORT_LIMIT,
        )
        return jsonify({"success": True, "summary": [s.to_dict() for s in summaries]}), 200
