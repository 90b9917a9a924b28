"""
services/customer_service.py — Admin views over customer profiles.

Customer contact details leave this module only through
presenters.present_customer, which masks email and phone.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockserver.app.errors import ErrorCode
from stockserver.app.models.customer import Customer
from stockserver.app.presenters import present_customer
from stockserver.app.services.lookup import get_or_404, paginate

logger = logging.getLogger(__name__)


def list_customers(session: Session, page: int = 1, per_page: int = 20, max_per_page: int = 100) -> dict:
    stmt = select(Customer).order_by(Customer.created_at.desc(), Customer.id)
    rows, meta = paginate(session, stmt, page, per_page, max_per_page)
    return {
        "items": [present_customer(c) for c in rows],
        "pagination": meta,
    }


def get_customer(session: Session, public_id: str) -> dict:
    customer = get_or_404(session, Customer, public_id, ErrorCode.CUSTOMER_NOT_FOUND, "Customer")
    return present_customer(customer)


def update_customer_status(session: Session, public_id: str, status: str) -> dict:
    """
    Activates or deactivates the customer's account. A deactivated account
    is refused by the access gate on its next request, whatever tokens it
    still holds.
    """
    customer = get_or_404(session, Customer, public_id, ErrorCode.CUSTOMER_NOT_FOUND, "Customer")
    customer.user.status = status
    session.flush()

    logger.info("Customer %s status set to %s", public_id, status)
    return present_customer(customer)
