"""
                        Services Module

Contains all business logic behind the HTTP layer. Services depend only
on the BaseStorage interface, so the same code runs on the in-memory
store (development) and the relational database (staging/production).

Services:
    - storage: Memory and database backings behind one interface
    - sessions: Session creation, link resolution and finalization
    - orders: Placing, paying and removing orders
    - aggregation: Stats, per-customer summaries and date-range reports
    - exporter: CSV export of a session's orders
"""

from app.services.aggregation import AggregationEngine
from app.services.exporter import SessionExporter
from app.services.orders import OrderDesk
from app.services.sessions import SessionLifecycleManager

__all__ = [
    "AggregationEngine",
    "SessionExporter",
    "OrderDesk",
    "SessionLifecycleManager",
]
