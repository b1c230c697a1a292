"""
Persistence package. `storage` is the process-wide DBStorage (scoped_session)
used as the credential store; tables are created by api.create_app().
"""
from models.db_storage import DBStorage

storage = DBStorage()
