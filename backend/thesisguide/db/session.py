from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from thesisguide.core.config import get_settings

settings = get_settings()

_engine_options: dict = {"pool_pre_ping": True}
if not settings.database_url.startswith("sqlite"):
    _engine_options["pool_timeout"] = settings.storage_timeout_seconds

engine = create_engine(settings.database_url, **_engine_options)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
