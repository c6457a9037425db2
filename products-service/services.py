from contextlib import contextmanager
from typing import Iterator, List

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import sessionmaker

from config import MAX_PAGE_SIZE
from errors import OperationTimeout, ProductNotFound, StorageFailure, ValidationFailure
from models import MAX_ID, Product
from repository import ProductPage, ProductRepository, SqlAlchemyProductRepository


class ProductService:
    """Cycle de vie des produits au-dessus du port de stockage.

    Chaque opération s'exécute dans une seule unité de travail : commit si
    tout réussit, rollback sur n'importe quelle erreur en cours de route.
    """

    def __init__(self, session_factory: sessionmaker, max_page_size: int = MAX_PAGE_SIZE):
        self._session_factory = session_factory
        self._max_page_size = max_page_size

    @contextmanager
    def _unit_of_work(self) -> Iterator[ProductRepository]:
        try:
            with self._session_factory.begin() as session:
                yield SqlAlchemyProductRepository(session)
        except PoolTimeoutError as exc:
            logger.error(f"Storage timeout: {exc}")
            raise OperationTimeout("Storage operation timed out") from exc
        except SQLAlchemyError as exc:
            logger.error(f"Storage failure: {exc}")
            raise StorageFailure("Storage backend failure") from exc

    @staticmethod
    def _get_or_raise(repo: ProductRepository, product_id: int) -> Product:
        # hors de la plage des ids stockables : absent par définition
        product = repo.find_by_id(product_id) if 0 < product_id <= MAX_ID else None
        if product is None:
            logger.warning(f"Product {product_id} not found")
            raise ProductNotFound(product_id)
        return product

    def create(self, category: str, name: str) -> Product:
        product = Product.create(category, name)
        with self._unit_of_work() as repo:
            product = repo.save(product)
        logger.info(f"Product created with ID {product.id}")
        return product

    def get_by_id(self, product_id: int) -> Product:
        with self._unit_of_work() as repo:
            return self._get_or_raise(repo, product_id)

    def update(self, product_id: int, category: str, name: str) -> Product:
        # Remplacement complet : category et name sont toujours écrasés
        with self._unit_of_work() as repo:
            product = self._get_or_raise(repo, product_id)
            product.recategorize(category)
            product.rename(name)
            product = repo.save(product)
        logger.info(f"Product {product_id} updated")
        return product

    def delete_by_id(self, product_id: int) -> None:
        with self._unit_of_work() as repo:
            product = self._get_or_raise(repo, product_id)
            repo.delete(product)
        logger.info(f"Product {product_id} deleted")

    def list_by_category(self, category: str, page: int, size: int) -> ProductPage:
        fields = []
        if not isinstance(category, str) or not category.strip():
            fields.append("category")
        # l'offset page * size doit tenir dans un entier 64 bits
        if page < 0 or page > MAX_ID // max(size, 1):
            fields.append("page")
        if size < 1 or size > self._max_page_size:
            fields.append("size")
        if fields:
            raise ValidationFailure(
                f"Invalid list parameters (page >= 0, 1 <= size <= {self._max_page_size}, "
                f"category not blank)",
                fields=fields,
            )

        with self._unit_of_work() as repo:
            return repo.find_page(category, page, size, sort_key="category", direction="asc")

    def list_distinct_categories(self) -> List[str]:
        with self._unit_of_work() as repo:
            return repo.find_distinct_categories()
