from sqlalchemy import Column, String

from models.base_model import BaseModel, Base


class Role(BaseModel, Base):
    """Static reference data, seeded at startup (see DBStorage.seed_roles)."""
    __tablename__ = "roles"

    name = Column(String(64), nullable=False, unique=True, index=True)

    def __repr__(self):
        return f"<Role {self.name}>"
