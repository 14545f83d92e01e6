from aurelius_claims.core.config import get_settings
from aurelius_claims.db import get_engine
from aurelius_claims.models import *  # noqa
from aurelius_claims.models.base import Base

def init_db():
    print(f"🚀 Connecting to {get_settings().database_url}")
    Base.metadata.create_all(bind=get_engine())
    print("✅ Tables created successfully!")

if __name__ == "__main__":
    init_db()
