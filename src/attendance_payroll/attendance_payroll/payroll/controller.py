from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import parse_enum, require_int, require_month, require_non_negative, require_year
from ..common.web import client_ip, current_actor, json_body, json_endpoint, role_required, user_agent
from ..container import Container
from ..core.enums import PayrollStatus, Role


def register(app: Flask, container: Container) -> None:
    payroll = container.payroll_service

    @app.route("/api/payroll", methods=["POST"], endpoint="payroll_generate")
    @json_endpoint
    @role_required(Role.ADMIN, Role.MANAGER)
    def payroll_generate():
        data = json_body()
        employee_ids = data.get("employee_ids")
        if employee_ids is not None:
            if not isinstance(employee_ids, list):
                employee_ids = [employee_ids]
            employee_ids = [require_int(v, "employee_ids") for v in employee_ids]

        result = payroll.generate(
            current_actor(),
            month=require_month(data.get("month")),
            year=require_year(data.get("year")),
            employee_ids=employee_ids,
            ip=client_ip(),
            user_agent=user_agent(),
        )
        return jsonify({"success": True, "result": result.to_dict()}), 201

    @app.route("/api/payroll", methods=["GET"], endpoint="payroll_list")
    @json_endpoint
    def payroll_list():
        employee_id = request.args.get("employee_id")
        records = payroll.list_records(
            current_actor(),
            month=require_month(request.args.get("month")),
            year=require_year(request.args.get("year")),
            employee_id=require_int(employee_id, "employee_id") if employee_id else None,
        )
        return jsonify({"success": True, "payroll": [r.to_dict() for r in records]}), 200

    @app.route("/api/payroll/<int:payroll_id>", methods=["GET"], endpoint="payroll_detail")
    @json_endpoint
    def payroll_detail(payroll_id: int):
        record = payroll.get(current_actor(), payroll_id)
        return jsonify({"success": True, "payroll": record.to_dict()}), 200

    @app.route("/api/payroll/<int:payroll_id>/status", methods=["PUT"], endpoint="payroll_status")
    @json_endpoint
    @role_required(Role.ADMIN)
    def payroll_status(payroll_id: int):
        data = json_body()
        record = payroll.update_status(
            current_actor(),
            payroll_id,
            parse_enum(PayrollStatus, data.get("status"), "status"),
            ip=client_ip(),
            user_agent=user_agent(),
        )
        return jsonify({"success": True, "payroll": record.to_dict()}), 200

    @app.route("/api/payroll/<int:payroll_id>/adjustments", methods=["PUT"], endpoint="payroll_adjustments")
    @json_endpoint
    @role_required(Role.ADMIN)
    def payroll_adjustments(payroll_id: int):
        data = json_body()
        record = payroll.set_adjustments(
            current_actor(),
            payroll_id,
            penalties=require_non_negative(data.get("penalties", 0), "penalties"),
            advance_payment=require_non_negative(data.get("advance_payment", 0), "advance_payment"),
            other_deductions=require_non_negative(data.get("other_deductions", 0), "other_deductions"),
            ip=client_ip(),
            user_agent=user_agent(),
        )
        return jsonify({"success": True, "payroll": record.to_dict()}), 200

    @app.route("/api/payroll/<int:payroll_id>", methods=["DELETE"], endpoint="payroll_delete")
    @json_endpoint
    @role_required(Role.ADMIN)
    def payroll_delete(payroll_id: int):
        payroll.delete(current_actor(), payroll_id, ip=client_ip(), user_agent=user_agent())
        return jsonify({"success": True}), 200
