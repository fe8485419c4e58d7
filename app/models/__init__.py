"""
Model package — imports all models so Alembic and SQLAlchemy can
discover them when ``flask db`` commands or ``db.create_all()`` run.

  - organization.py  -> tenants and departments
  - user.py          -> users and organization profiles
  - license.py       -> license inventory and usage samples
  - insight.py       -> optimization findings
  - gamification.py  -> department scores and badges
  - environmental.py -> environmental impact snapshots
  - audit.py         -> audit trail and generator run log
"""

# -- tenants ---------------------------------------------------------------
from app.models.organization import Department, Organization  # noqa: F401

# -- identity --------------------------------------------------------------
from app.models.user import User, UserProfile  # noqa: F401

# -- inventory -------------------------------------------------------------
from app.models.license import License, LicenseUsage  # noqa: F401

# -- derived metrics -------------------------------------------------------
from app.models.insight import Insight  # noqa: F401
from app.models.gamification import Badge, GamificationScore  # noqa: F401
from app.models.environmental import EnvironmentalImpact  # noqa: F401

# -- audit -----------------------------------------------------------------
from app.models.audit import AuditLog, GeneratorRun  # noqa: F401
