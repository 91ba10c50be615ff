from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from taskdesk.config.settings import settings

DATABASE_URL = settings.DATABASE_URL

# Hosted PostgreSQL keeps sslmode=require; SQLite needs cross-thread access for FastAPI
if settings.is_postgres():
    connect_args = {"sslmode": "require"}
elif settings.is_sqlite():
    connect_args = {"check_same_thread": False}
else:
    connect_args = {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
