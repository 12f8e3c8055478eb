"""
Access guard schemas.
"""

from typing import Optional

from pydantic import BaseModel


class AccessDecisionResponse(BaseModel):
    outcome: str
    target: Optional[str] = None
    return_path: Optional[str] = None


class LandingResponse(BaseModel):
    landing_path: str
