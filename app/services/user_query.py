"""Filter, sort and pagination building for the user list."""

import math
from typing import Any

from sqlalchemy import and_, func, or_
from sqlalchemy.sql.elements import ColumnElement

from app.models import User
from app.schemas.user import PaginationMeta, SortOrder, UserQuery, UserSortField
from app.services.errors import BadRequestError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# Escape character for LIKE patterns built from user input.
LIKE_ESCAPE = "\\"

SORT_COLUMNS: dict[UserSortField, Any] = {
    UserSortField.CREATED_AT: User.created_at,
    UserSortField.UPDATED_AT: User.updated_at,
    UserSortField.EMAIL: User.email,
    UserSortField.USERNAME: User.username,
    UserSortField.FIRST_NAME: User.first_name,
    UserSortField.LAST_NAME: User.last_name,
    UserSortField.LAST_LOGIN_AT: User.last_login_at,
}


def normalize_pagination(page: int | None, limit: int | None) -> tuple[int, int, int]:
    """Clamp page/limit to valid ranges and return (page, limit, offset)."""
    page = max(1, page or DEFAULT_PAGE)
    limit = min(max(1, limit or DEFAULT_LIMIT), MAX_LIMIT)
    return page, limit, (page - 1) * limit


def sanitize_search_term(search: str | None) -> str | None:
    """Escape LIKE wildcards; blank input means no search."""
    if not search:
        return None
    escaped = (
        search.strip()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return escaped or None


def build_user_filters(query: UserQuery) -> list[ColumnElement[bool]]:
    """
    Translate list filters into SQL conditions (AND-ed by the caller).

    search matches case-insensitively anywhere in email, username, first or
    last name. date_from/date_to bound created_at inclusively.
    """
    if query.date_from and query.date_to and query.date_from > query.date_to:
        raise BadRequestError("Date from cannot be greater than date to")

    conditions: list[ColumnElement[bool]] = []
    if query.role is not None:
        conditions.append(User.role == query.role.value)
    if query.is_active is not None:
        conditions.append(User.is_active.is_(query.is_active))
    if query.is_email_verified is not None:
        conditions.append(User.is_email_verified.is_(query.is_email_verified))

    term = sanitize_search_term(query.search)
    if term:
        pattern = f"%{term.lower()}%"
        conditions.append(
            or_(
                *(
                    func.lower(column).like(pattern, escape=LIKE_ESCAPE)
                    for column in (User.email, User.username, User.first_name, User.last_name)
                )
            )
        )

    if query.date_from:
        conditions.append(User.created_at >= query.date_from)
    if query.date_to:
        conditions.append(User.created_at <= query.date_to)
    return conditions


def combine_filters(conditions: list[ColumnElement[bool]]) -> ColumnElement[bool] | None:
    return and_(*conditions) if conditions else None


def build_sort(sort_by: UserSortField, sort_order: SortOrder) -> list[Any]:
    """ORDER BY for the requested field; id breaks ties so pages are stable."""
    column = SORT_COLUMNS[sort_by]
    if sort_order == SortOrder.DESC:
        return [column.desc(), User.id.desc()]
    return [column.asc(), User.id.asc()]


def build_pagination_meta(total: int, page: int, limit: int) -> PaginationMeta:
    total_pages = math.ceil(total / limit) if limit else 0
    return PaginationMeta(
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )
