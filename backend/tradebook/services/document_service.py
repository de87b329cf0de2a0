# Overview: Invoice number allocation and uniqueness checks.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from ..validation import ConflictError


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(*, document_type: str, prefix: str, pad: int = 6) -> str:
    """
    Atomically allocate the next document number for a document type.

    Runs inside the caller's transaction and must be called before the
    caller adds anything to the session: a lost creation race rolls the
    session back.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        seq = DocumentSequence(document_type=document_type, next_number=2)
        db.session.add(seq)
        try:
            db.session.flush()
            return f"{prefix}-{1:0{pad}d}"
        except IntegrityError as exc:
            db.session.rollback()
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise ConflictError(f"Could not allocate a {document_type} number, please retry") from exc

    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return f"{prefix}-{current - 1:0{pad}d}"


def resolve_invoice_number(model, raw_number, *, document_type: str, prefix: str, exclude_id=None, scope=None) -> str:
    """
    Return the invoice number to store: the caller's (checked for
    uniqueness) or a freshly allocated one when left blank.

    `scope` is an optional dict of extra equality filters (e.g. kind).
    """
    number = (raw_number or "").strip() if isinstance(raw_number, str) else raw_number
    if not number:
        while True:
            candidate = next_document_number(document_type=document_type, prefix=prefix)
            if not _number_taken(model, candidate, exclude_id, scope):
                return candidate

    number = str(number)
    if _number_taken(model, number, exclude_id, scope):
        raise ConflictError(f"Invoice number {number} already exists")
    return number


def _number_taken(model, number: str, exclude_id, scope) -> bool:
    query = db.session.query(model.id).filter(model.invoice_number == number)
    for key, value in (scope or {}).items():
        query = query.filter(getattr(model, key) == value)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    return query.first() is not None
