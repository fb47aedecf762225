"""SOS Ksar - role-based emergency reporting service.

Citizens submit SOS reports, volunteers and admins triage them from the
command center, and an inventory table tracks relief supplies.

Key Features:
- Cookie/Bearer sessions backed by PostgreSQL with a short Redis cache
- Email/password and Google sign-in
- Route gate that redirects by authentication and role before any handler runs
- Action-level authorization guards (citizen / volunteer / admin)
- Report lifecycle: pending -> in_progress -> resolved | cancelled

Version: 1.0.0
"""

__version__ = "1.0.0"
