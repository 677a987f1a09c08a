import re
from typing import List

from famous_since.database import db
from famous_since.models import models
from famous_since.utils.exceptions import ConflictError, ValidationError
from famous_since.utils.logging import get_logger

log = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DUPLICATE_MESSAGE = "This email is already on our waitlist"


def join(first_name: str, last_name: str, email: str) -> models.WaitlistEntry:
    first_name, last_name, email = (value.strip() if value else "" for value in (first_name, last_name, email))
    if not (first_name and last_name and email):
        raise ValidationError("First name, last name, and email are required")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email address")
    email = email.lower()
    if models.WaitlistEntry.get_one(email=email):
        raise ConflictError(DUPLICATE_MESSAGE)
    try:
        entry = models.WaitlistEntry.new(first_name=first_name, last_name=last_name, email=email)
    except db.IntegrityError as e:
        if db.is_duplicate(e, "email"):
            raise ConflictError(DUPLICATE_MESSAGE) from e
        raise
    log.info("Waitlist signup #%s", entry.id)
    return entry


def total() -> int:
    return models.WaitlistEntry.count()


def entries() -> List[models.WaitlistEntry]:
    return models.WaitlistEntry.get(order_by="subscribed_at DESC, id DESC")
