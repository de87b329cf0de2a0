# Overview: Container settlement statements (products, expenses, net sale).

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..domain import (
    ExpenseLine,
    ProductLine,
    ValidationError,
    add_expense,
    aggregate_product_lines,
    compute_settlement,
    refresh_commission,
    remove_expense,
    require_authorization,
)
from ..domain.amounts import to_amount
from ..extensions import db
from ..models import ContainerExpense, ContainerProductLine, ContainerStatement
from ..validation import ConflictError, NotFoundError
from .concurrency import lock_for_update, run_with_retry


def _product_lines(statement: ContainerStatement) -> list[ProductLine]:
    return [
        ProductLine(product=l.product, quantity=l.quantity, unit_price=l.unit_price, amount=l.amount)
        for l in statement.product_lines
    ]


def _expense_lines(statement: ContainerStatement) -> list[ExpenseLine]:
    return [
        ExpenseLine(description=e.description, amount=e.amount, is_auto_generated=e.is_auto_generated, id=e.id)
        for e in statement.expenses
    ]


def _parse_products(raw) -> list[ProductLine]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("products must be a list")
    lines = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each product line must be an object")
        lines.append(ProductLine.of(item.get("product"), item.get("quantity"), item.get("unit_price")))
    return lines


def _parse_expenses(raw) -> tuple[ExpenseLine, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValidationError("expenses must be a list")
    expenses: tuple[ExpenseLine, ...] = ()
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each expense must be an object")
        expenses = add_expense(expenses, item.get("description"), item.get("amount"))
    return expenses


def _commission_percent(raw) -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return current_app.config["CONTAINER_COMMISSION_PERCENT"]
    value = to_amount(raw)
    if value > 100:
        raise ValidationError("commission_percent cannot exceed 100")
    return value


def _set_products(statement: ContainerStatement, lines: list[ProductLine]) -> None:
    statement.product_lines = [
        ContainerProductLine(
            position=index,
            product=line.product,
            quantity=line.quantity,
            unit_price=line.unit_price,
            amount=line.amount,
        )
        for index, line in enumerate(lines)
    ]


def _append_expense(statement: ContainerStatement, expense: ExpenseLine, position: int) -> None:
    statement.expenses.append(ContainerExpense(
        position=position,
        description=expense.description,
        amount=expense.amount,
        is_auto_generated=expense.is_auto_generated,
    ))


def _recompute(statement: ContainerStatement) -> None:
    """Refresh the auto commission and the cached settlement figures."""
    grouped = aggregate_product_lines(_product_lines(statement))
    gross_sale = compute_settlement(grouped, ()).gross_sale

    refreshed = refresh_commission(_expense_lines(statement), gross_sale, statement.commission_percent)
    for row in [e for e in statement.expenses if e.is_auto_generated]:
        statement.expenses.remove(row)
    for expense in refreshed:
        if expense.is_auto_generated:
            _append_expense(statement, expense, position=-1)

    settlement = compute_settlement(grouped, refreshed)
    statement.gross_sale = settlement.gross_sale
    statement.total_expenses = settlement.total_expenses
    statement.net_sale = settlement.net_sale
    statement.total_quantity = settlement.total_quantity


def statement_to_dict(statement: ContainerStatement) -> dict:
    grouped = aggregate_product_lines(_product_lines(statement))
    return statement.to_dict(grouped_products=[line.to_dict() for line in grouped])


def get_statement(statement_id: int) -> ContainerStatement:
    statement = db.session.get(ContainerStatement, statement_id)
    if not statement:
        raise NotFoundError(f"Container statement {statement_id} not found")
    return statement


def get_statement_by_container(container_no: str) -> ContainerStatement:
    statement = db.session.query(ContainerStatement).filter_by(container_no=(container_no or "").strip()).first()
    if not statement:
        raise NotFoundError(f"No statement for container {container_no}")
    return statement


def _get_locked(statement_id: int) -> ContainerStatement:
    query = db.session.query(ContainerStatement).filter_by(id=statement_id)
    statement = lock_for_update(query).first()
    if not statement:
        raise NotFoundError(f"Container statement {statement_id} not found")
    return statement


def _container_taken(container_no: str) -> bool:
    return db.session.query(ContainerStatement.id).filter_by(container_no=container_no).first() is not None


def create_statement(data: dict, *, user_id: int) -> ContainerStatement:
    """
    One statement per container. A concurrent create for the same
    container that slips past the lookup hits the unique constraint and
    is reported as a ConflictError as well.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    container_no = str(data.get("container_no") or "").strip()
    if not container_no:
        raise ValidationError("container_no is required")
    products = _parse_products(data.get("products"))
    expenses = _parse_expenses(data.get("expenses"))
    commission = _commission_percent(data.get("commission_percent"))
    conflict = f"Statement for container {container_no} already exists"

    def _op():
        if _container_taken(container_no):
            raise ConflictError(conflict)

        statement = ContainerStatement(
            container_no=container_no,
            commission_percent=commission,
            created_by_user_id=user_id,
            updated_by_user_id=user_id,
        )
        _set_products(statement, products)
        for index, expense in enumerate(expenses):
            _append_expense(statement, expense, position=index)
        _recompute(statement)

        db.session.add(statement)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError(conflict) from exc
        return statement

    return run_with_retry(_op)


def update_statement(statement_id: int, data: dict, *, user_id: int) -> ContainerStatement:
    """Replace product lines and/or manual expenses; commission follows."""
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    products = _parse_products(data["products"]) if "products" in data else None
    expenses = _parse_expenses(data["expenses"]) if "expenses" in data else None

    def _op():
        statement = _get_locked(statement_id)
        if "commission_percent" in data:
            statement.commission_percent = _commission_percent(data.get("commission_percent"))
        if products is not None:
            _set_products(statement, products)
        if expenses is not None:
            for row in [e for e in statement.expenses if not e.is_auto_generated]:
                statement.expenses.remove(row)
            for index, expense in enumerate(expenses):
                _append_expense(statement, expense, position=index)
        _recompute(statement)
        statement.updated_by_user_id = user_id
        db.session.commit()
        return statement

    return run_with_retry(_op)


def add_statement_expense(statement_id: int, *, description, amount, user_id: int) -> ContainerStatement:
    def _op():
        statement = _get_locked(statement_id)
        expenses = add_expense(_expense_lines(statement), description, amount)
        position = max((e.position for e in statement.expenses), default=-1) + 1
        _append_expense(statement, expenses[-1], position=position)
        _recompute(statement)
        statement.updated_by_user_id = user_id
        db.session.commit()
        return statement

    return run_with_retry(_op)


def remove_statement_expense(statement_id: int, expense_id: int, *, user_id: int) -> ContainerStatement:
    def _op():
        statement = _get_locked(statement_id)
        row = next((e for e in statement.expenses if e.id == expense_id), None)
        if row is None:
            raise NotFoundError(f"Expense {expense_id} not found on statement {statement_id}")
        remove_expense(_expense_lines(statement), expense_id)
        statement.expenses.remove(row)
        _recompute(statement)
        statement.updated_by_user_id = user_id
        db.session.commit()
        return statement

    return run_with_retry(_op)


def delete_statement(statement_id: int, *, authorization: str | None, user_id: int) -> None:
    """Hard-delete a statement with its lines and expenses (admin re-authentication required)."""
    require_authorization(authorization, "delete a container statement")

    def _op():
        statement = _get_locked(statement_id)
        container_no = statement.container_no
        db.session.delete(statement)
        db.session.commit()
        current_app.logger.info("Container statement %s deleted by user %s", container_no, user_id)

    run_with_retry(_op)


def list_statements(*, page: int, limit: int, search: str | None = None) -> dict:
    base_query = db.session.query(ContainerStatement)
    if search and search.strip():
        base_query = base_query.filter(ContainerStatement.container_no.ilike(f"%{search.strip()}%"))
    base_query = base_query.order_by(ContainerStatement.created_at.desc(), ContainerStatement.id.desc())

    total = base_query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    statements = base_query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [statement_to_dict(s) for s in statements],
        "count": len(statements),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
