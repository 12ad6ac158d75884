"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from mortgage_engine.config import Settings, settings
from mortgage_engine.infrastructure.clients.property import PropertyClient
from mortgage_engine.infrastructure.database.repositories import ApplicationRepository, BankRepository
from mortgage_engine.infrastructure.database.session import get_db
from mortgage_engine.services.engine import MortgageEngine


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_settings() -> Settings:
    """Provide engine configuration"""
    return settings


def get_current_user_id(x_user_id: int = Header(..., description="Authenticated user identifier")) -> int:
    """Caller identity, set by the upstream auth gateway"""
    return x_user_id


def get_engine(db: Session = Depends(get_db), config: Settings = Depends(get_settings)) -> MortgageEngine:
    """Provide a mortgage engine bound to the request's session"""
    return MortgageEngine(config, BankRepository(db), ApplicationRepository(db))


def get_property_client() -> PropertyClient:
    """Provide property catalog client instance"""
    return PropertyClient()
