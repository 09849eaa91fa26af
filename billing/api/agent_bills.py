# billing/api/agent_bills.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends

from billing.services.agent_bills import list_agent_bills
from billing.services.errors import ValidationError
from billing.services.rates import source_for_group_type
from billing.services.roles import require_user

router = APIRouter(prefix="/agent-bills", tags=["Agent Bills"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]


@router.get("")
def get_agent_bills(
    _user: CurrentUser,
    source: Optional[str] = None,
    agent_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Derived commission rows, newest first. ``source`` is Claim or Depo."""
    src: Optional[str] = None
    if source is not None and source.strip():
        src = source_for_group_type(source)
        if src is None:
            raise ValidationError("source must be Claim or Depo")
    return list_agent_bills(source=src, agent_id=agent_id)
