"""Campus Attendance package.

Feature modules (geofence, sessions, attendance, subjects, notifications)
keep a thin Flask controller layer over service/repository layers. The QR
session protocol lives in ``sessions`` and ``attendance``.
"""
