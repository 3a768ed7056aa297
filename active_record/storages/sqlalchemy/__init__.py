from active_record.storages.sqlalchemy.driver import SqlAlchemyDriver, bind_positional
from active_record.storages.sqlalchemy.tables import build_table, build_tables
