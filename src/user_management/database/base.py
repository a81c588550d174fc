"""
Declarative base for the record store.

Every ORM model of the service inherits from `Base`. Constraint names are
generated from the naming convention below so the integrity mapper can tell
which column a store-level violation refers to (e.g. `uq_users_user_name`).
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s"
}
