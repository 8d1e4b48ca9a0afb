# API Routers
from hms.routers import reservations, front_desk, payments, rooms, daily_tasks

__all__ = ['reservations', 'front_desk', 'payments', 'rooms', 'daily_tasks']
