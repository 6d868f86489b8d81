# Overview: Store and user lookups used for actor resolution and display names.

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select

from ..extensions import db
from ..models import Store, User


def get_active_user(user_id: int) -> User | None:
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return None
    return user


def store_names(store_ids: Iterable[int | None]) -> dict[int, str]:
    ids = {i for i in store_ids if i is not None}
    if not ids:
        return {}
    rows = db.session.execute(select(Store.id, Store.name).where(Store.id.in_(ids))).all()
    return {row.id: row.name for row in rows}


def user_names(user_ids: Iterable[int | None]) -> dict[int, str]:
    ids = {i for i in user_ids if i is not None}
    if not ids:
        return {}
    rows = db.session.execute(
        select(User.id, User.display_name, User.username).where(User.id.in_(ids))
    ).all()
    return {row.id: row.display_name or row.username for row in rows}


def user_name(user_id: int | None, default: str = "Unknown") -> str:
    if user_id is None:
        return default
    return user_names([user_id]).get(user_id, default)
