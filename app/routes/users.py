import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..auth import get_current_user
from ..models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


class UserResponse(BaseModel):
    id: int
    subject: str
    name: Optional[str]
    email: Optional[str]
    createdAt: Optional[datetime] = None


@router.get("/me", response_model=UserResponse)
def read_users_me(current_user: User = Depends(get_current_user)):
    """Get the current authenticated user's profile data"""
    return UserResponse(
        id=current_user.id,
        subject=current_user.subject,
        name=current_user.full_name,
        email=current_user.email,
        createdAt=current_user.created_at,
    )
