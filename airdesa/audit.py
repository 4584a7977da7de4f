import json
from typing import Any, Optional

from sqlmodel import Session

from .models import AuditLog


def record_audit(
    session: Session,
    actor_id: Optional[int],
    action: str,
    table_name: str,
    row_id: Optional[int],
    before: Optional[Any] = None,
    after: Optional[Any] = None,
):
    al = AuditLog(
        actor_id=actor_id,
        action=action,
        table_name=table_name,
        row_id=row_id,
        before=json.dumps(before, default=str) if before is not None else None,
        after=json.dumps(after, default=str) if after is not None else None,
    )
    session.add(al)
