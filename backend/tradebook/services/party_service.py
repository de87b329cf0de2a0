# Overview: Customer and supplier master data.

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..validation import ConflictError, ModelValidationPolicy, NotFoundError


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"ename", "uname", "email", "number", "trn", "is_active"},
    required_on_create={"ename"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"ename", "uname", "email", "number", "marka", "is_active"},
    required_on_create={"ename"},
)


def _ensure_unique_name(model, ename: str, exclude_id: int | None = None) -> None:
    query = db.session.query(model.id).filter(db.func.lower(model.ename) == ename.lower())
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"{model.__name__} '{ename}' already exists")


def get_party(model, party_id: int):
    party = db.session.get(model, party_id)
    if not party:
        raise NotFoundError(f"{model.__name__} {party_id} not found")
    return party


def create_party(model, *, patch: dict, user_id: int):
    _ensure_unique_name(model, patch["ename"])
    party = model(**patch, created_by_user_id=user_id, updated_by_user_id=user_id)
    db.session.add(party)
    db.session.commit()
    return party


def update_party(model, party_id: int, *, patch: dict, user_id: int):
    party = get_party(model, party_id)
    if "ename" in patch:
        _ensure_unique_name(model, patch["ename"], exclude_id=party.id)
    for key, value in patch.items():
        setattr(party, key, value)
    party.updated_by_user_id = user_id
    db.session.commit()
    return party


def deactivate_party(model, party_id: int, *, user_id: int):
    """Soft delete: invoices keep referring to the party by name."""
    party = get_party(model, party_id)
    party.is_active = False
    party.updated_by_user_id = user_id
    db.session.commit()
    return party


def _search_filter(model, search: str):
    like = f"%{search}%"
    return or_(model.ename.ilike(like), model.uname.ilike(like), model.number.ilike(like))


def list_parties(model, *, page: int, limit: int, search: str | None = None, include_inactive: bool = False) -> dict:
    base_query = db.session.query(model)
    if not include_inactive:
        base_query = base_query.filter(model.is_active.is_(True))
    if search and search.strip():
        base_query = base_query.filter(_search_filter(model, search.strip()))
    base_query = base_query.order_by(model.ename.asc(), model.id.asc())

    total = base_query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    parties = base_query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [p.to_dict() for p in parties],
        "count": len(parties),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def search_parties(model, term: str, limit: int = 10) -> list:
    """Autocomplete lookup over active parties."""
    term = (term or "").strip()
    if not term:
        return []
    return (
        db.session.query(model)
        .filter(model.is_active.is_(True), _search_filter(model, term))
        .order_by(model.ename.asc())
        .limit(limit)
        .all()
    )
