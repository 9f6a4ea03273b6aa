from __future__ import annotations

from datetime import date

from flask import Flask, jsonify, request

from ..common.datetime_utils import month_bounds, now_local
from ..common.validators import parse_enum, require_int, require_non_empty
from ..common.web import (
    client_ip,
    current_actor,
    date_arg,
    date_field,
    datetime_field,
    json_body,
    json_endpoint,
    role_required,
    user_agent,
)
from ..container import Container
from ..core.enums import AttendanceStatus, Role
from .service import ADMIN_EDITABLE


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service
    closer = container.daily_closer

    def _employee_id(data: dict) -> int:
        value = data.get("employee_id")
        if value in (None, ""):
            return current_actor().user_id
        return require_int(value, "employee_id")

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_action")
    @json_endpoint
    def attendance_action():
        actor = current_actor()
        data = json_body()
        action = require_non_empty(data.get("action"), "action")
        record = attendance.apply(actor, action, _employee_id(data), ip=client_ip())
        return jsonify({"success": True, "attendance": record.to_dict()}), 200

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @json_endpoint
    def attendance_today():
        actor = current_actor()
        record = attendance.get_today(actor, _employee_id(request.args))
        return jsonify({"success": True, "attendance": record.to_dict() if record else None}), 200

    @app.route("/api/attendance/calendar", methods=["GET"], endpoint="attendance_calendar")
    @json_endpoint
    def attendance_calendar():
        actor = current_actor()
        today = now_local().date()
        month_start, month_end = month_bounds(today.year, today.month)
        start = date_arg("start", month_start)
        end = date_arg("end", month_end)
        days = attendance.calendar(actor, _employee_id(request.args), start=start, end=end)
        return jsonify({"success": True, "days": [d.to_dict() for d in days]}), 200

    @app.route("/api/attendance/manual", methods=["POST"], endpoint="attendance_manual")
    @json_endpoint
    @role_required(Role.ADMIN, Role.MANAGER)
    def attendance_manual():
        data = json_body()
        record = attendance.create_manual_record(
            current_actor(),
            employee_id=require_int(data.get("employee_id"), "employee_id"),
            work_date=date_field(data, "work_date"),
            status=parse_enum(AttendanceStatus, data.get("status"), "status"),
            punch_in=datetime_field(data, "punch_in"),
            punch_out=datetime_field(data, "punch_out"),
            ip=client_ip(),
            user_agent=user_agent(),
        )
        return jsonify({"success": True, "attendance": record.to_dict()}), 201

    @app.route("/api/attendance/<int:attendance_id>", methods=["PUT"], endpoint="attendance_update")
    @json_endpoint
    @role_required(Role.ADMIN, Role.MANAGER)
    def attendance_update(attendance_id: int):
        data = json_body()
        changes = {}
        for name in ADMIN_EDITABLE:
            if name not in data:
                continue
            changes[name] = data[name] if name == "status" else datetime_field(data, name)
        # unknown keys are rejected by the service
        changes.update({k: v for k, v in data.items() if k not in ADMIN_EDITABLE})

        record = attendance.update_record(
            current_actor(), attendance_id, changes, ip=client_ip(), user_agent=user_agent()
        )
        return jsonify({"success": True, "attendance": record.to_dict()}), 200

    @app.route("/api/attendance/leave", methods=["POST"], endpoint="attendance_mark_leave")
    @json_endpoint
    @role_required(Role.ADMIN, Role.MANAGER)
    def attendance_mark_leave():
        data = json_body()
        days = attendance.mark_leave(
            current_actor(),
            employee_id=require_int(data.get("employee_id"), "employee_id"),
            start=date_field(data, "start"),
            end=date_field(data, "end"),
            ip=client_ip(),
            user_agent=user_agent(),
        )
        return jsonify({"success": True, "days": days}), 200

    @app.route("/api/attendance/leave/revert", methods=["POST"], endpoint="attendance_revert_leave")
    @json_endpoint
    @role_required(Role.ADMIN, Role.MANAGER)
    def attendance_revert_leave():
        data = json_body()
        days = attendance.revert_leave(
            current_actor(),
            employee_id=require_int(data.get("employee_id"), "employee_id"),
            start=date_field(data, "start"),
            end=date_field(data, "end"),
            ip=client_ip(),
            user_agent=user_agent(),
        )
        return jsonify({"success": True, "days": days}), 200

    @app.route("/api/admin/force-punchout", methods=["POST"], endpoint="admin_force_punchout")
    @json_endpoint
    @role_required(Role.ADMIN)
    def admin_force_punchout():
        data = json_body()
        record = attendance.force_punch_out(
            current_actor(),
            require_int(data.get("employee_id"), "employee_id"),
            ip=client_ip(),
            user_agent=user_agent(),
        )
        return jsonify({"success": True, "attendance": record.to_dict()}), 200

    @app.route("/api/admin/open-sessions", methods=["GET"], endpoint="admin_open_sessions")
    @json_endpoint
    @role_required(Role.ADMIN)
    def admin_open_sessions():
        day = date_arg("date", now_local().date())
        records = attendance.list_open_sessions(current_actor(), day=day)
        return jsonify({"success": True, "sessions": [r.to_dict() for r in records]}), 200

    @app.route("/api/admin/daily-close", methods=["POST"], endpoint="admin_daily_close")
    @json_endpoint
    @role_required(Role.ADMIN)
    def admin_daily_close():
        data = json_body()
        work_date: date = date_field(data, "date") if data.get("date") else now_local().date()
        result = closer.close_day(current_actor(), work_date, ip=client_ip(), user_agent=user_agent())
        return jsonify({"success": True, "result": result.to_dict()}), 200

    @app.route("/api/admin/fix-holiday-attendance", methods=["POST"], endpoint="admin_fix_holiday_attendance")
    @json_endpoint
    @role_required(Role.ADMIN)
    def admin_fix_holiday_attendance():
        data = json_body()
        fixed = closer.fix_holiday_absences(
            current_actor(),
            start=date_field(data, "start"),
            end=date_field(data, "end"),
            ip=client_ip(),
            user_agent=user_agent(),
        )
        return jsonify({"success": True, "fixed": fixed}), 200
