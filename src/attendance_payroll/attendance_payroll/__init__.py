"""Attendance Payroll package.

This package is organized by feature modules (attendance, activity, payroll, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""
