# taskdesk/models/role.py
from sqlalchemy import Column, Integer, String, Text, JSON
from sqlalchemy.orm import relationship

from taskdesk.database import Base


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(64), unique=True, index=True, nullable=False)  # stable lowercase key
    display_name = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    permissions = Column(JSON, nullable=False, default=dict)

    users = relationship("User", back_populates="role")

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}')>"
