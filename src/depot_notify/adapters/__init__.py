"""Adapters – SQLAlchemy persistence and FastAPI worker endpoints."""
