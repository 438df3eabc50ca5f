"""
order_store - persistence of the Order aggregate.

One ``OrderRepository`` contract, four interchangeable SQLAlchemy
strategies (aggregate-mapped or row-projected, ORM or Core), selected by
``PersistenceSettings.strategy``.
"""

__version__ = "0.1.0"
