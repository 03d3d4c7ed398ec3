import re
from typing import Any, Dict, Mapping, Optional

LANGUAGE_CHOICES = ("English", "Spanish", "French", "German", "Chinese", "Japanese", "Other")

# Every field of the add/edit form is required.
REQUIRED_BOOK_FIELDS = ("title", "author", "url", "publisher", "language")

_URL_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


class BookFormValidator:
    """Required-field checks for the book form, applied before a draft reaches the repository."""

    @staticmethod
    def is_valid_url(url: Optional[str]) -> bool:
        if not url:
            return False
        return bool(_URL_RE.match(url.strip()))

    @staticmethod
    def validate(draft: Mapping[str, Any], required: tuple = REQUIRED_BOOK_FIELDS) -> Dict[str, str]:
        """Return a field -> hint mapping; empty when the draft can be submitted."""
        errors: Dict[str, str] = {}
        for field in required:
            value = draft.get(field)
            if value is None or not str(value).strip():
                errors[field] = f"{field.capitalize()} is required."
        url = draft.get("url")
        if "url" not in errors and url is not None and str(url).strip() and not BookFormValidator.is_valid_url(url):
            errors["url"] = "Url must be a valid http(s) address."
        language = draft.get("language")
        if "language" not in errors and language and language not in LANGUAGE_CHOICES:
            errors["language"] = f"Language must be one of: {', '.join(LANGUAGE_CHOICES)}."
        return errors
