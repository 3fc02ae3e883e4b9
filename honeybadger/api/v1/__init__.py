"""API v1 router."""
from fastapi import APIRouter

from honeybadger.api.v1 import auth, challenges, chat, companions, payments

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(companions.router, prefix="/badgers", tags=["Honey Badgers"])
api_router.include_router(challenges.router, prefix="/challenges", tags=["Challenges"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(chat.router, tags=["Chat"])
