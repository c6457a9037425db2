"""
Exceptions levées par la couche service.

Chaque erreur porte un type stable (error_type) et le code HTTP associé ;
seule la couche HTTP (main.py) les traduit en réponse.
"""
from typing import List, Optional


class ProductServiceError(Exception):
    error_type = "internal_error"
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ProductNotFound(ProductServiceError):
    error_type = "not_found"
    status_code = 404

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class ValidationFailure(ProductServiceError):
    error_type = "validation_error"
    status_code = 400

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class StorageFailure(ProductServiceError):
    """Storage backend unreachable or failing."""
    error_type = "storage_error"
    status_code = 500


class OperationTimeout(ProductServiceError):
    """Storage or request deadline exceeded."""
    error_type = "timeout"
    status_code = 504
