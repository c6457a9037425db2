"""
Port de stockage des produits.

Le service ne dépend que de ProductRepository ; l'implémentation SQLAlchemy
travaille dans la session (et donc la transaction) fournie par l'appelant.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import Product

SORT_KEYS = {
    "id": Product.id,
    "category": Product.category,
    "name": Product.name,
}
SORT_DIRECTIONS = ("asc", "desc")


@dataclass
class ProductPage:
    items: List[Product]
    total_pages: int
    total_elements: int
    page: int
    size: int


class ProductRepository(ABC):

    @abstractmethod
    def save(self, product: Product) -> Product:
        """Insère si le produit n'a pas d'id, sinon écrase l'enregistrement."""

    @abstractmethod
    def find_by_id(self, product_id: int) -> Optional[Product]:
        """Retourne le produit ou None."""

    @abstractmethod
    def delete(self, product: Product) -> None:
        """Supprime le produit."""

    @abstractmethod
    def find_page(
        self, category: str, page: int, size: int,
        sort_key: str = "category", direction: str = "asc",
    ) -> ProductPage:
        """Page des produits dont la catégorie est exactement `category`."""

    @abstractmethod
    def find_distinct_categories(self) -> List[str]:
        """Toutes les catégories distinctes, sans normalisation."""


class SqlAlchemyProductRepository(ProductRepository):

    def __init__(self, session: Session):
        self._session = session

    def save(self, product: Product) -> Product:
        self._session.add(product)
        # flush : l'id est attribué sans attendre le commit
        self._session.flush()
        return product

    def find_by_id(self, product_id: int) -> Optional[Product]:
        return self._session.get(Product, product_id)

    def delete(self, product: Product) -> None:
        self._session.delete(product)
        self._session.flush()

    def find_page(
        self, category: str, page: int, size: int,
        sort_key: str = "category", direction: str = "asc",
    ) -> ProductPage:
        if sort_key not in SORT_KEYS:
            raise ValueError(f"Unsupported sort key: {sort_key}")
        if direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unsupported sort direction: {direction}")

        column = SORT_KEYS[sort_key]
        order = column.asc() if direction == "asc" else column.desc()

        total = self._session.scalar(
            select(func.count()).select_from(Product).where(Product.category == category)
        )
        # Tri secondaire par id : les frontières de page restent stables
        items = self._session.scalars(
            select(Product)
            .where(Product.category == category)
            .order_by(order, Product.id.asc())
            .offset(page * size)
            .limit(size)
        ).all()

        return ProductPage(
            items=list(items),
            total_pages=math.ceil(total / size) if total else 0,
            total_elements=total,
            page=page,
            size=size,
        )

    def find_distinct_categories(self) -> List[str]:
        return list(
            self._session.scalars(
                select(Product.category).distinct().order_by(Product.category)
            ).all()
        )
