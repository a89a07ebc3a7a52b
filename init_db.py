from core.db import Base, engine
from models.audit_log import AuditLog
from models.local_state import LocalState

def init_db(drop=False):
    if drop:
        print("Rebuilding local database (drop/create)...")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("All tables created:")
    print("   - local_state")
    print("   - audit_logs")
    print("\nDatabase initialization complete!")

if __name__ == "__main__":
    import sys
    init_db(drop="--drop" in sys.argv)
