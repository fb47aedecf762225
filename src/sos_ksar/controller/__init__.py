"""API controllers.

This package provides endpoint controllers for auth, pages, reports,
inventory, users, the command center, and health checks.
"""

from sos_ksar.controller import (
    auth_controller,
    command_center_controller,
    health_controller,
    inventory_controller,
    page_controller,
    report_controller,
    user_controller,
)

__all__ = [
    "auth_controller",
    "command_center_controller",
    "health_controller",
    "inventory_controller",
    "page_controller",
    "report_controller",
    "user_controller",
]
