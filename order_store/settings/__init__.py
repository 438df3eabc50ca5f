# Settings package
from order_store.settings.persistence_settings import PersistenceSettings, get_persistence_settings

__all__ = ["PersistenceSettings", "get_persistence_settings"]
