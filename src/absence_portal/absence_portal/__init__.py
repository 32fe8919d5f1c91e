"""Absence Notice Portal package.

Organized by feature modules (users, students, absenteeism, otp, ...)
with a thin Flask controller layer over service/repository layers.
"""
