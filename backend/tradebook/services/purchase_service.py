# Overview: Container purchases costed in PKR with AED conversion.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..domain import ValidationError, compute_purchase_total
from ..extensions import db
from ..models import Purchase
from ..time_utils import parse_iso_date
from ..validation import ModelValidationPolicy, NotFoundError
from .concurrency import lock_for_update, run_with_retry


PURCHASE_POLICY = ModelValidationPolicy(
    writable_fields={
        "container_no", "product", "supplier", "purchase_date",
        "quantity", "rate", "transport", "freight", "e_form", "miscellaneous",
        "transfer_rate", "notes",
    },
    required_on_create={"container_no", "product", "quantity", "rate"},
    blank_as_zero={"transport", "freight", "e_form", "miscellaneous", "transfer_rate"},
)


def _derive_totals(purchase: Purchase) -> None:
    totals = compute_purchase_total(
        purchase.quantity,
        purchase.rate,
        purchase.transport,
        purchase.freight,
        purchase.e_form,
        purchase.miscellaneous,
        purchase.transfer_rate,
    )
    if totals.total_pkr <= 0:
        raise ValidationError("Purchase total must be greater than zero")
    purchase.subtotal_pkr = totals.subtotal_pkr
    purchase.total_pkr = totals.total_pkr
    purchase.total_aed = totals.total_aed


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError(f"Purchase {purchase_id} not found")
    return purchase


def create_purchase(*, patch: dict, user_id: int) -> Purchase:
    purchase = Purchase(**patch, created_by_user_id=user_id, updated_by_user_id=user_id)
    _derive_totals(purchase)
    db.session.add(purchase)
    db.session.commit()
    return purchase


def update_purchase(purchase_id: int, *, patch: dict, user_id: int) -> Purchase:
    def _op():
        purchase = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
        if not purchase:
            raise NotFoundError(f"Purchase {purchase_id} not found")
        for key, value in patch.items():
            setattr(purchase, key, value)
        _derive_totals(purchase)
        purchase.updated_by_user_id = user_id
        db.session.commit()
        return purchase

    return run_with_retry(_op)


def delete_purchase(purchase_id: int, *, user_id: int) -> None:
    purchase = get_purchase(purchase_id)
    container_no = purchase.container_no
    db.session.delete(purchase)
    db.session.commit()
    current_app.logger.info("Purchase %s (%s) deleted by user %s", purchase_id, container_no, user_id)


def _date_arg(args, name: str):
    try:
        return parse_iso_date(args.get(name))
    except ValueError:
        raise ValidationError(f"Invalid {name}: {args.get(name)}")


def _filtered_query(args):
    query = db.session.query(Purchase)
    search = (args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            Purchase.container_no.ilike(like),
            Purchase.product.ilike(like),
            Purchase.supplier.ilike(like),
        ))
    for name in ("container_no", "supplier", "product"):
        value = (args.get(name) or "").strip()
        if value:
            query = query.filter(getattr(Purchase, name).ilike(f"%{value}%"))

    start = _date_arg(args, "start_date")
    end = _date_arg(args, "end_date")
    if start and end and start > end:
        raise ValidationError("start_date cannot be after end_date")
    if start:
        query = query.filter(Purchase.purchase_date >= start)
    if end:
        query = query.filter(Purchase.purchase_date <= end)
    return query


def list_purchases(args, *, page: int, limit: int) -> dict:
    base_query = _filtered_query(args).order_by(Purchase.purchase_date.desc(), Purchase.id.desc())

    total = base_query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    purchases = base_query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [p.to_dict() for p in purchases],
        "count": len(purchases),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def purchase_report(args) -> dict:
    """Totals over the filtered purchases, overall and per container."""
    purchases = _filtered_query(args).order_by(Purchase.container_no.asc(), Purchase.id.asc()).all()

    by_container: dict[str, dict] = {}
    for p in purchases:
        row = by_container.setdefault(p.container_no, {
            "container_no": p.container_no,
            "purchase_count": 0,
            "total_quantity": 0.0,
            "subtotal_pkr": 0.0,
            "total_pkr": 0.0,
            "total_aed": 0.0,
        })
        row["purchase_count"] += 1
        row["total_quantity"] += p.quantity
        row["subtotal_pkr"] += p.subtotal_pkr
        row["total_pkr"] += p.total_pkr
        row["total_aed"] += p.total_aed

    for row in by_container.values():
        for key in ("subtotal_pkr", "total_pkr", "total_aed"):
            row[key] = round(row[key], 2)

    return {
        "purchase_count": len(purchases),
        "total_quantity": sum(p.quantity for p in purchases),
        "subtotal_pkr": round(sum(p.subtotal_pkr for p in purchases), 2),
        "transport": round(sum(p.transport for p in purchases), 2),
        "freight": round(sum(p.freight for p in purchases), 2),
        "e_form": round(sum(p.e_form for p in purchases), 2),
        "miscellaneous": round(sum(p.miscellaneous for p in purchases), 2),
        "total_pkr": round(sum(p.total_pkr for p in purchases), 2),
        "total_aed": round(sum(p.total_aed for p in purchases), 2),
        "containers": list(by_container.values()),
    }
