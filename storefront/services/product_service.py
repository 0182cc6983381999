# storefront/services/product_service.py
from typing import List

from sqlalchemy.orm import Session

from storefront.data.database import transaction
from storefront.data.models.product import ProductModel
from storefront.domain.errors import ForbiddenError, NotFoundError
from storefront.domain.identity import CurrentUser
from storefront.domain.schemas import ProductCreate, ProductUpdate
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ProductService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepo(db)

    def list_products(self, limit: int = 100, offset: int = 0) -> List[ProductModel]:
        return self.repo.list_products(limit=limit, offset=offset)

    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, payload: ProductCreate, actor: CurrentUser) -> ProductModel:
        self._require_admin(actor)
        with transaction(self.db):
            product = self.repo.add_product(ProductModel(**payload.model_dump()))
        self.db.refresh(product)
        logger.info(f"Product {product.id} created with stock {product.stock}")
        return product

    def update_product(self, product_id: int, payload: ProductUpdate, actor: CurrentUser) -> ProductModel:
        """Stock is not editable here, only the order ledger moves it."""
        self._require_admin(actor)
        product = self.get_product(product_id)
        with transaction(self.db):
            for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
                setattr(product, field, value)
        self.db.refresh(product)
        return product

    def delete_product(self, product_id: int, actor: CurrentUser) -> None:
        self._require_admin(actor)
        product = self.get_product(product_id)
        # pozycje koszykow z tym produktem znikna przy nastepnym odczycie koszyka
        with transaction(self.db):
            self.repo.delete_product(product)
        logger.info(f"Product {product_id} deleted")

    @staticmethod
    def _require_admin(actor: CurrentUser) -> None:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
