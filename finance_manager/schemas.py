"""
Secure Finance Manager - Request Schemas

PURPOSE: Request body models for the JSON API
SCOPE: Create and PATCH payloads; every field is optional so PATCH can leave values unchanged
DEPENDENCIES: pydantic
"""

from typing import Optional

from pydantic import BaseModel


class UserPayload(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class CategoryPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    colour_id: Optional[int] = None


class SubcategoryPayload(CategoryPayload):
    category_id: Optional[int] = None


class LabelPayload(CategoryPayload):
    pass


class EntryPayload(BaseModel):
    subcategory_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    time_of_transaction: Optional[str] = None
    attachment: Optional[str] = None
