# app/services/customer_service.py
"""
Customer directory consumed by the billing engine.
Identity fields are edited elsewhere; the billing engine only reads
customers and writes their outstanding fields through update_customer().
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlmodel import Session, col, select

from ..models.customer import Customer
from .base_service import BaseCRUDService

logger = logging.getLogger(__name__)


class CustomerService(BaseCRUDService[Customer]):
    def __init__(self, session: Session):
        super().__init__(session, Customer)

    def get_all_customers(self) -> List[Customer]:
        statement = select(Customer).order_by(Customer.name)
        return self.session.exec(statement).all()

    def get_customers_by_ids(self, customer_ids: List[uuid.UUID]) -> List[Customer]:
        if not customer_ids:
            return []
        statement = (
            select(Customer).where(col(Customer.id).in_(customer_ids)).order_by(Customer.name)
        )
        return self.session.exec(statement).all()

    def get_customer(self, customer_id: uuid.UUID) -> Customer:
        return self.get_by_id(customer_id)

    def find_customer(self, customer_id: uuid.UUID) -> Optional[Customer]:
        return self.session.get(Customer, customer_id)

    def create_customer(self, customer_data: Dict[str, Any]) -> Customer:
        data = {k: v for k, v in customer_data.items() if k != "id"}
        customer = self.create(data)
        logger.info(f"Customer created: {customer.name} ({customer.id})")
        return customer

    def update_customer(self, customer_id: uuid.UUID, fields: Dict[str, Any]) -> Customer:
        return self.update(customer_id, fields)
