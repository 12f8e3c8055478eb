"""
API v1 routes.
"""

from fastapi import APIRouter

from bootcamp.api.v1 import access, auth, certificates, courses, enrollments

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(courses.router, prefix="/courses", tags=["Courses"])
router.include_router(enrollments.router, prefix="/enrollments", tags=["Enrollments"])
router.include_router(certificates.router, prefix="/certificates", tags=["Certificates"])
router.include_router(access.router, prefix="/access", tags=["Access"])
