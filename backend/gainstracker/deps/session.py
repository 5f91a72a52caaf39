# gainstracker/deps/session.py
from functools import lru_cache
from fastapi import Depends

from gainstracker.db import SessionLocal
from gainstracker.deps.auth import get_current_user
from gainstracker.models import User
from gainstracker.services.session_registry import DraftController, SessionRegistry
from gainstracker.settings import get_settings

@lru_cache
def get_registry() -> SessionRegistry:
    return SessionRegistry(SessionLocal, get_settings())

def get_draft(
    current: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_registry),
) -> DraftController:
    return registry.get(current.id)
