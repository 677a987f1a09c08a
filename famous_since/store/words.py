"""Admin-maintained list of words that may not be printed."""
from typing import Optional

from famous_since.database import db
from famous_since.models import models
from famous_since.utils.exceptions import ConflictError, NotFoundError, ValidationError


def add_word(word: str, reason: Optional[str] = None) -> models.ForbiddenWord:
    word = (word or "").strip().upper()
    if not word or len(word.split()) != 1:
        raise ValidationError("Enter a single word")
    try:
        return models.ForbiddenWord.new(word=word, reason=(reason or "").strip() or None)
    except db.IntegrityError as e:
        if db.is_duplicate(e, "word"):
            raise ConflictError("This word is already in the exceptions list") from e
        raise


def remove_word(word_id) -> None:
    entry = models.ForbiddenWord.get_by_id(word_id)
    if entry is None:
        raise NotFoundError("Word not found")
    entry.delete()
