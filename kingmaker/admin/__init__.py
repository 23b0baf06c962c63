"""Admin tooling."""

from .service import AdminService, build_admin_service

__all__ = ["AdminService", "build_admin_service"]
