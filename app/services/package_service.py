from typing import Any, Dict, List

from sqlmodel import Session, select

from ..models.package import Package
from .base_service import BaseCRUDService


class PackageService(BaseCRUDService[Package]):
    """
    Read side of the package catalog used for pricing.
    Inactive packages are kept so existing VCs can still be priced.
    """

    def __init__(self, session: Session):
        super().__init__(session, Package)

    def get_all_packages(self) -> List[Package]:
        statement = select(Package).order_by(Package.name)
        return self.session.exec(statement).all()

    def get_package_map(self) -> Dict[int, Package]:
        """Packages keyed by id. Inactive packages still price existing VCs."""
        return {p.id: p for p in self.get_all_packages()}

    def get_package(self, package_id: int) -> Package:
        return self.get_by_id(package_id)

    def create_package(self, package_data: Dict[str, Any]) -> Package:
        existing = self.session.exec(
            select(Package).where(Package.name == package_data["name"])
        ).first()
        if existing:
            raise ValueError(f"Package '{package_data['name']}' already exists.")
        return self.create(package_data)
