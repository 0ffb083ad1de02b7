"""FastAPI adapters – worker endpoints and error mapping."""
from depot_notify.adapters.fastapi.exception_mapper import FastAPIExceptionMapper
from depot_notify.adapters.fastapi.routers import FastAPIWorkerRouter, cron_auth_dependency

__all__ = ["FastAPIExceptionMapper", "FastAPIWorkerRouter", "cron_auth_dependency"]
