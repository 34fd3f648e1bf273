"""
Title Service — the list of assignable executor titles.

Assignable titles = built-in DEFAULT_TITLES followed by the admin-managed
custom titles (duplicates removed, order kept).
"""

import logging

from resolution_desk.core.exceptions import ValidationError
from resolution_desk.models.auth import DEFAULT_TITLES
from resolution_desk.services.gateway import get_gateway

logger = logging.getLogger(__name__)


def _clean(title: str) -> str:
    value = (title or "").strip()
    if not value:
        raise ValidationError("title is required", details={"title": "required"})
    return value


def list_custom_titles():
    return get_gateway().get_custom_titles()


def assignable_titles() -> list[str]:
    titles = list(DEFAULT_TITLES)
    for row in get_gateway().get_custom_titles():
        if row.title not in titles:
            titles.append(row.title)
    return titles


def create_title(title: str):
    row = get_gateway().save_custom_title(_clean(title))
    logger.info("Custom title added: %s", row.title)
    return row


def rename_title(title_id: int, title: str):
    return get_gateway().update_custom_title(title_id, _clean(title))


def delete_title(title_id: int) -> None:
    get_gateway().delete_custom_title(title_id)
    logger.info("Custom title %s deleted", title_id)
