"""
Alembic model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

# Member first: every other table points at identity_member.
from club_finance.modules.identity.models import Member  # noqa: F401

from club_finance.modules.archive.models import Archive  # noqa: F401
from club_finance.modules.audit.models import AuditEvent  # noqa: F401
from club_finance.modules.board.models import Board, BoardSeat  # noqa: F401
from club_finance.modules.events.models import Event  # noqa: F401
from club_finance.modules.expenses.models import Expense  # noqa: F401
