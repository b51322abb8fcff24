from menumagi.routers import auth, customer, owner, realtime

__all__ = ["auth", "customer", "owner", "realtime"]
