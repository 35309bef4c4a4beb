"""Aggregate all API routers."""

from fastapi import APIRouter

from . import costs, oauth, price, system

api_router = APIRouter()
api_router.include_router(price.router)
api_router.include_router(oauth.router)
api_router.include_router(costs.router)
api_router.include_router(system.router)
