"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Team is the tenant root; documents, links, data rooms and viewers are team-scoped

Design Decisions:
    - One file per aggregate (documents, links, views, data rooms, viewers, verification)
    - All models imported here so foreign-key targets resolve before create_all
      and Alembic autogenerate see every table
"""

from papermark.models.user import User, Team, UserTeam  # noqa: F401
from papermark.models.document import Document, DocumentVersion, DocumentPage  # noqa: F401
from papermark.models.dataroom import Dataroom, DataroomFolder, DataroomDocument  # noqa: F401
from papermark.models.viewer import (  # noqa: F401
    Viewer, ViewerGroup, ViewerGroupMembership, ViewerGroupAccessControl,
)
from papermark.models.link import Agreement, Link  # noqa: F401
from papermark.models.view import View, PageView, VideoEvent  # noqa: F401
from papermark.models.verification import VerificationToken, DataroomSession  # noqa: F401
