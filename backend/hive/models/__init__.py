"""ORM Models: SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Every user-owned row carries user_id (tenant scoping happens in services)

Design Decisions:
    - One file per aggregate for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from hive.models.profile import Profile  # noqa: F401
from hive.models.agent import Agent  # noqa: F401
from hive.models.swarm import Swarm, SwarmAgent  # noqa: F401
from hive.models.message import Message  # noqa: F401
from hive.models.context_block import ContextBlock  # noqa: F401
from hive.models.integration import Integration  # noqa: F401
from hive.models.team_template import TeamTemplate  # noqa: F401
from hive.models.presence import SwarmPresence  # noqa: F401
from hive.models.rate_limit import RateLimitEvent, PlanRateLimit  # noqa: F401
from hive.models.ai_usage import AIUsage  # noqa: F401
from hive.models.webhook import Webhook, WebhookEvent, WebhookDelivery  # noqa: F401
from hive.models.feedback import Feedback, NPSResponse  # noqa: F401
