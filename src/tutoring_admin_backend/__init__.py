"""
Back-office API for a tutoring business: classes, students, tuition billing,
exam grades and class documents.

The FastAPI application lives in `tutoring_admin_backend.main:app`.
"""
