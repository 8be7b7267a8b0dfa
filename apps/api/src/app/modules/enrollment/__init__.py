"""Enrollment module - application intake and account provisioning."""

from app.modules.enrollment.models import ApplicationStatus, EnrollmentApplication
from app.modules.enrollment.router import router

__all__ = ["ApplicationStatus", "EnrollmentApplication", "router"]
