"""PostgreSQL-backed stores for users, products, projects and system prompts."""

from __future__ import annotations

from src.store.products import ProductStore
from src.store.projects import ProjectStore
from src.store.system_prompts import SystemPromptStore
from src.store.users import DuplicateEmailError, UserStore

__all__ = [
    "DuplicateEmailError",
    "ProductStore",
    "ProjectStore",
    "SystemPromptStore",
    "UserStore",
]
