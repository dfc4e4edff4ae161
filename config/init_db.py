# File: config/init_db.py

from rhodesign.config import Settings
from rhodesign.db.models import Base
from rhodesign.db.session import init_engine

if __name__ == "__main__":
    settings = Settings.from_env()
    print("Creating signing tables...")
    engine = init_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    print("Tables created.")
