"""
Database module initialization
"""

from .mongodb import (
    close_mongo_connection,
    connect_to_mongo,
    db,
    get_database,
    get_form_collection,
    ping_mongo,
)

__all__ = [
    "db",
    "connect_to_mongo",
    "close_mongo_connection",
    "get_database",
    "get_form_collection",
    "ping_mongo",
]
