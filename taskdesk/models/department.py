# taskdesk/models/department.py
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from taskdesk.database import Base


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), unique=True, nullable=False)

    users = relationship("User", back_populates="department")
