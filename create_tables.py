# create_tables.py
import logging

from taskdesk.database import Base, SessionLocal, engine
from taskdesk.models import Department, Role, Task, TaskComment, User  # noqa: F401 - registers tables
from taskdesk.utils.permissions import DEFAULT_ROLE_PERMISSIONS, ROLE_DISPLAY_NAMES

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_roles(db) -> int:
    """Insert the default role catalogue; existing roles are left untouched"""
    existing = {name for (name,) in db.query(Role.name).all()}
    created = 0
    for name, permissions in DEFAULT_ROLE_PERMISSIONS.items():
        if name in existing:
            continue
        db.add(Role(
            name=name,
            display_name=ROLE_DISPLAY_NAMES.get(name, name.title()),
            permissions=dict(permissions),
        ))
        created += 1
    db.commit()
    return created


def create_tables():
    """Create all tables and seed default roles"""
    Base.metadata.create_all(bind=engine)
    logger.info("All tables created")

    db = SessionLocal()
    try:
        created = seed_roles(db)
        logger.info("Seeded %d default roles", created)
    finally:
        db.close()


if __name__ == "__main__":
    create_tables()
