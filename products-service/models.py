from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from database import Base
from errors import ValidationFailure

NAME_MAX_LENGTH = 100
CATEGORY_MAX_LENGTH = 100
# Plus grand entier stocké par la base (BIGINT signé)
MAX_ID = 2**63 - 1


def _require_text(field: str, value, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailure(f"{field} must not be blank", fields=[field])
    if len(value) > max_length:
        raise ValidationFailure(
            f"{field} must be at most {max_length} characters", fields=[field]
        )
    return value


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column("product_id", Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(CATEGORY_MAX_LENGTH), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)

    @classmethod
    def create(cls, category: str, name: str) -> "Product":
        """Nouveau produit sans id ; l'id est attribué par la base à l'insertion."""
        errors = []
        for field, value, max_length in (
            ("category", category, CATEGORY_MAX_LENGTH),
            ("name", name, NAME_MAX_LENGTH),
        ):
            try:
                _require_text(field, value, max_length)
            except ValidationFailure as exc:
                errors.append(exc)
        if errors:
            raise ValidationFailure(
                "; ".join(e.message for e in errors),
                fields=[f for e in errors for f in e.fields],
            )
        return cls(category=category, name=name)

    def rename(self, name: str) -> None:
        self.name = _require_text("name", name, NAME_MAX_LENGTH)

    def recategorize(self, category: str) -> None:
        self.category = _require_text("category", category, CATEGORY_MAX_LENGTH)

    def __repr__(self):
        return f"<Product {self.id} {self.category!r} {self.name!r}>"
