# app/schemas/token.py
from pydantic import BaseModel
from typing import Optional


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (user ID)
    exp: int  # Standard claim for expiration time
    username: Optional[str] = None

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
    }
