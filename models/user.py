from sqlalchemy import Column, String, Integer, ForeignKey, Table
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel, TimestampMixin

# Association table; join rows go away with either side
user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(TimestampMixin, BaseModel, Base):
    __tablename__ = "users"

    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)

    # selectin: roles are read after the scoped session may have been removed
    roles = relationship("Role", secondary=user_roles, lazy="selectin", order_by="Role.id")

    @property
    def role_names(self):
        return [role.name for role in self.roles]

    def __repr__(self):
        return f"<User {self.username}>"
