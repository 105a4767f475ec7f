import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session
from sqlalchemy import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_custom_id(db: Session, model, prefix: str, id_field: str) -> str:
    """Next sequential id for ``model`` ("L3", "T12", "M40"), skipping any already taken."""
    column = getattr(model, id_field)
    number = db.query(func.count()).select_from(model).scalar() + 1
    # Deletions leave the count behind the highest id in use
    while db.query(column).filter(column == f"{prefix}{number}").first() is not None:
        number += 1
    return f"{prefix}{number}"


def generate_standing_id() -> str:
    # Standings are bulk-inserted; a count-based id would collide inside one flush
    return f"ST{uuid.uuid4().hex}"
